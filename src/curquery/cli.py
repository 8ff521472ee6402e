import argparse
from datetime import datetime

from curquery.config import Config
from curquery.decoder import parse_timestamp
from curquery.errors import InvalidTimestamp
from curquery.hashing import ALGORITHMS
from curquery.logging import LOG_FORMATS
from curquery.reader import ON_ERROR_POLICIES


def _timestamp(value: "str") -> "datetime":
    try:
        return parse_timestamp("window", value)
    except InvalidTimestamp as e:
        raise argparse.ArgumentTypeError(
            f"{value!r} is not a timestamp like 2020-05-01T00:00:00Z"
        ) from e


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="curquery",
        description="Sum the unblended cost of a cost and usage report by field",
    )
    try:
        config = Config.from_env()
    except ValueError as e:
        parser.error(str(e))

    parser.add_argument(
        "report_path",
        help="Path to the report, optionally gzip compressed (.gz)",
    )
    parser.add_argument(
        "--group-by",
        dest="group_by",
        action="append",
        metavar="FIELD",
        help=(
            "Field to group by, repeat for a composite key "
            "(default: lineItem/ProductCode lineItem/Operation)"
        ),
    )
    parser.add_argument(
        "--start",
        dest="window_start",
        type=_timestamp,
        default=config.window_start,
        help="Query window start (default: 2020-05-01T00:00:00Z)",
    )
    parser.add_argument(
        "--end",
        dest="window_end",
        type=_timestamp,
        default=config.window_end,
        help="Query window end (default: 2020-06-01T00:00:00Z)",
    )
    parser.add_argument(
        "--lenient-fields",
        dest="lenient_fields",
        action="store_true",
        help="Skip unsupported group-by fields instead of failing",
    )
    parser.add_argument(
        "--on-error",
        dest="on_error",
        default=config.on_error,
        choices=list(ON_ERROR_POLICIES),
        help="Abort the load or skip rows that fail to decode (default: abort)",
    )
    parser.add_argument(
        "--hash.algorithm",
        dest="hash_algorithm",
        default=config.hash_algorithm,
        choices=list(ALGORITHMS),
        help="Hash used to identify line items (default: xxh64)",
    )
    parser.add_argument(
        "--hash.width",
        dest="hash_width",
        type=int,
        default=config.hash_width,
        help="Hash width in bits, blake2b only",
    )
    parser.add_argument(
        "--metrics.textfile",
        dest="metrics_textfile",
        default="",
        help="Write load metrics to this file in the node exporter textfile format",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=list(LOG_FORMATS),
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    # argparse does not check defaults taken from the environment
    if args.on_error not in ON_ERROR_POLICIES:
        parser.error(
            f"CURQUERY_ON_ERROR must be one of {', '.join(ON_ERROR_POLICIES)}, "
            f"got {args.on_error!r}"
        )
    if args.hash_algorithm not in ALGORITHMS:
        parser.error(
            f"CURQUERY_HASH_ALGORITHM must be one of {', '.join(ALGORITHMS)}, "
            f"got {args.hash_algorithm!r}"
        )
    config.report_path = args.report_path
    if args.group_by:
        config.group_by = args.group_by
    config.window_start = args.window_start
    config.window_end = args.window_end
    config.lenient_fields = args.lenient_fields
    config.on_error = args.on_error
    config.hash_algorithm = args.hash_algorithm
    config.hash_width = args.hash_width
    config.metrics_textfile = args.metrics_textfile
    config.log_level = args.log_level
    config.log_format = args.log_format
    return config
