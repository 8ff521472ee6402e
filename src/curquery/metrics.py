from prometheus_client import REGISTRY, CollectorRegistry, Counter, write_to_textfile


class IngestMetrics:
    """
    counts what happened to the rows of a report load.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._registry: "CollectorRegistry" = registry
        self._rows_read: "Counter" = Counter(
            "curquery_rows_read_total",
            "Total report rows read, header excluded",
            registry=registry,
        )
        self._ingested: "Counter" = Counter(
            "curquery_line_items_ingested_total",
            "Total line items stored in the report",
            registry=registry,
        )
        self._duplicates: "Counter" = Counter(
            "curquery_duplicates_skipped_total",
            "Total line items dropped as duplicates",
            registry=registry,
        )
        self._decode_errors: "Counter" = Counter(
            "curquery_decode_errors_total",
            "Total rows that could not be decoded, by error",
            ["error"],
            registry=registry,
        )

    def inc_rows_read(self) -> "None":
        self._rows_read.inc()

    def inc_ingested(self) -> "None":
        self._ingested.inc()

    def inc_duplicate(self) -> "None":
        self._duplicates.inc()

    def inc_decode_error(self, error: "str") -> "None":
        self._decode_errors.labels(error=error).inc()

    def write_textfile(self, path: "str") -> "None":
        """
        writes the registry in the node exporter textfile format.
        """
        write_to_textfile(path, self._registry)
