import hashlib

import xxhash

DEFAULT_ALGORITHM = "xxh64"

# fixed output width in bits for the xxhash family
_XXHASH_WIDTHS: "dict[str, int]" = {
    "xxh64": 64,
    "xxh3_64": 64,
    "xxh3_128": 128,
}

ALGORITHMS: "tuple[str, ...]" = (*_XXHASH_WIDTHS, "blake2b")


class IdentityHasher:
    """
    IdentityHasher maps the opaque identity/LineItemId string of
    a report row to an integer uid.

    The hash is not cryptographic: two distinct identifiers may
    collide, in which case the report treats them as the same
    record. Wider hashes lower that risk. xxh64 with seed 0 is the
    default and yields the uids historically produced for these
    reports.
    """

    def __init__(
        self,
        algorithm: "str" = DEFAULT_ALGORITHM,
        width: "int | None" = None,
    ) -> "None":
        if algorithm in _XXHASH_WIDTHS:
            fixed = _XXHASH_WIDTHS[algorithm]
            if width is not None and width != fixed:
                raise ValueError(f"{algorithm} produces {fixed}-bit hashes, not {width}")
            width = fixed
        elif algorithm == "blake2b":
            width = 64 if width is None else width
            if width % 8 or not 8 <= width <= 512:
                raise ValueError(
                    f"blake2b width must be a multiple of 8 between 8 and 512, got {width}"
                )
        else:
            raise ValueError(
                f"unknown hash algorithm {algorithm!r}, expected one of {', '.join(ALGORITHMS)}"
            )

        self.algorithm = algorithm
        self.width = width

    def __call__(self, identifier: "str") -> "int":
        data = identifier.encode("utf-8")
        if self.algorithm == "xxh64":
            return xxhash.xxh64_intdigest(data)
        if self.algorithm == "xxh3_64":
            return xxhash.xxh3_64_intdigest(data)
        if self.algorithm == "xxh3_128":
            return xxhash.xxh3_128_intdigest(data)

        digest = hashlib.blake2b(data, digest_size=self.width // 8).digest()
        return int.from_bytes(digest, "big")

    def __repr__(self) -> "str":
        return f"IdentityHasher(algorithm={self.algorithm!r}, width={self.width})"
