import gzip
from contextlib import contextmanager
from typing import IO, Iterable, Iterator

import structlog

from curquery.decoder import RecordDecoder
from curquery.errors import DecodeError
from curquery.hashing import IdentityHasher
from curquery.metrics import IngestMetrics
from curquery.report import Report

logger = structlog.get_logger()

ON_ERROR_ABORT = "abort"
ON_ERROR_SKIP = "skip"
ON_ERROR_POLICIES: "tuple[str, ...]" = (ON_ERROR_ABORT, ON_ERROR_SKIP)


@contextmanager
def open_report(path: "str") -> "Iterator[IO[str]]":
    """
    opens a report for reading as text. Files ending in .gz are
    decompressed on the fly.
    """
    if path.endswith(".gz"):
        fh = gzip.open(path, "rt", encoding="utf-8-sig", newline="")
    else:
        fh = open(path, "r", encoding="utf-8-sig", newline="")
    with fh:
        yield fh


def read_rows(lines: "Iterable[str]") -> "Iterator[tuple[int, list[str]]]":
    """
    splits report lines on commas and yields (line_number, fields)
    pairs, the header included. Quoted fields are not supported;
    cost and usage report exports do not quote.
    """
    for line_number, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line:
            continue
        yield line_number, line.split(",")


def load_report(
    path: "str",
    *,
    hasher: "IdentityHasher | None" = None,
    on_error: "str" = ON_ERROR_ABORT,
    report: "Report | None" = None,
    metrics: "IngestMetrics | None" = None,
) -> "Report":
    """
    reads the report at path and ingests every row into report
    (a new Report when None).

    With on_error="abort" the first row that fails to decode aborts
    the load by re-raising its DecodeError. With on_error="skip" the
    row is logged, counted and dropped.
    """
    if on_error not in ON_ERROR_POLICIES:
        raise ValueError(
            f"on_error must be one of {', '.join(ON_ERROR_POLICIES)}, got {on_error!r}"
        )

    report = Report() if report is None else report
    with open_report(path) as fh:
        ingest_rows(
            read_rows(fh),
            report,
            hasher=hasher,
            on_error=on_error,
            metrics=metrics,
        )

    logger.info("report_loaded", path=path, line_items=len(report))
    return report


def ingest_rows(
    rows: "Iterable[tuple[int, list[str]]]",
    report: "Report",
    *,
    hasher: "IdentityHasher | None" = None,
    on_error: "str" = ON_ERROR_ABORT,
    metrics: "IngestMetrics | None" = None,
) -> "Report":
    """
    decodes numbered rows, header first, into report.
    """
    rows = iter(rows)
    header = next(rows, None)
    if header is None:
        logger.warning("report_empty")
        return report

    # a header without the needed columns is fatal regardless of policy
    decoder = RecordDecoder.from_header(header[1], hasher)

    for line_number, fields in rows:
        if metrics is not None:
            metrics.inc_rows_read()

        try:
            item = decoder.decode(fields)
        except DecodeError as e:
            if metrics is not None:
                metrics.inc_decode_error(type(e).__name__)
            if on_error == ON_ERROR_ABORT:
                raise
            logger.warning(
                "row_decode_failed",
                line=line_number,
                field=e.field,
                error=str(e),
            )
            continue

        if report.ingest(item):
            if metrics is not None:
                metrics.inc_ingested()
        elif metrics is not None:
            metrics.inc_duplicate()

    return report
