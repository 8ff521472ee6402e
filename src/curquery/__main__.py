import json

import structlog
from prometheus_client import CollectorRegistry

from curquery.cli import parse_args
from curquery.errors import CurQueryError
from curquery.logging import setup_logging
from curquery.metrics import IngestMetrics
from curquery.reader import load_report

logger = structlog.get_logger()


def format_result(totals: "dict[str, float]") -> "str":
    return json.dumps(totals, indent=2, sort_keys=True)


def main(argv: "list[str] | None" = None) -> "None":
    config = parse_args(argv)
    setup_logging(config.log_level, config.log_format)

    try:
        hasher = config.hasher()
    except ValueError as e:
        raise SystemExit(str(e)) from e

    metrics = IngestMetrics(CollectorRegistry())

    try:
        report = load_report(
            config.report_path,
            hasher=hasher,
            on_error=config.on_error,
            metrics=metrics,
        )
        totals = report.group_by_sum(
            config.group_by,
            config.window_start,
            config.window_end,
            lenient=config.lenient_fields,
        )
    except CurQueryError as e:
        logger.error("query_failed", error=str(e))
        raise SystemExit(f"curquery: {e}") from e
    finally:
        if config.metrics_textfile:
            metrics.write_textfile(config.metrics_textfile)

    logger.info("query_complete", groups=len(totals))
    print(format_result(totals))


if __name__ == "__main__":
    main()
