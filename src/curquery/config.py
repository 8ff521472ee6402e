import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

from curquery.hashing import DEFAULT_ALGORITHM, IdentityHasher


def _default_group_by() -> "list[str]":
    return ["lineItem/ProductCode", "lineItem/Operation"]


@dataclass
class Config:
    report_path: "str" = ""
    # fields to group the summed unblended cost by, in key order
    group_by: "list[str]" = field(default_factory=_default_group_by)
    window_start: "datetime" = datetime(2020, 5, 1, tzinfo=timezone.utc)
    window_end: "datetime" = datetime(2020, 6, 1, tzinfo=timezone.utc)
    # skip unknown group-by fields instead of failing
    lenient_fields: "bool" = False
    log_level: "str" = "info"
    # "console" or "json"
    log_format: "str" = "console"

    # "abort" or "skip" rows that fail to decode
    on_error: "str" = "abort"
    hash_algorithm: "str" = DEFAULT_ALGORITHM
    # bits; None keeps the algorithm's default
    hash_width: "int | None" = None
    metrics_textfile: "str" = ""

    @classmethod
    def from_env(cls) -> "Config":
        width = os.environ.get("CURQUERY_HASH_WIDTH", "")
        if width and not (width.isascii() and width.isdigit()):
            raise ValueError(f"CURQUERY_HASH_WIDTH must be a number of bits, got {width!r}")
        return cls(
            on_error=os.environ.get("CURQUERY_ON_ERROR", "abort"),
            hash_algorithm=os.environ.get("CURQUERY_HASH_ALGORITHM", DEFAULT_ALGORITHM),
            hash_width=int(width) if width else None,
        )

    def hasher(self) -> "IdentityHasher":
        return IdentityHasher(self.hash_algorithm, self.hash_width)
