import bisect
import threading
from datetime import datetime
from typing import Callable, Iterator, Sequence

import structlog

from curquery.errors import UnsupportedGroupField
from curquery.fields import GROUP_FIELDS, KEY_SEPARATOR
from curquery.models import Diagnostic, LineItem

logger = structlog.get_logger()

DUPLICATE_LINE_ITEM = "duplicate_line_item"
UNSUPPORTED_GROUP_FIELD = "unsupported_group_field"


class Report:
    """
    Report: Is the in-memory, time-indexed store of the line items
    of one cost and usage report.

    Items are bucketed by their interval start. Alongside the buckets
    the report keeps the distinct start timestamps in ascending order,
    which lets range queries stop at the first bucket starting after
    the query window.

    An item whose uid already exists in its start bucket is a
    duplicate and is dropped. Duplicates and other non-fatal events
    are logged, appended to diagnostics and passed to the optional
    observer.
    """

    def __init__(
        self,
        observer: "Callable[[Diagnostic], None] | None" = None,
    ) -> "None":
        self._lock: "threading.Lock" = threading.Lock()
        self._items_by_start: "dict[datetime, list[LineItem]]" = {}
        self._sorted_starts: "list[datetime]" = []
        self._observer = observer
        self.diagnostics: "list[Diagnostic]" = []

    def __len__(self) -> "int":
        return sum(len(bucket) for bucket in self._items_by_start.values())

    def __iter__(self) -> "Iterator[LineItem]":
        """
        iterates every item, earliest start first.
        """
        for start in list(self._sorted_starts):
            yield from self._items_by_start[start]

    @property
    def sorted_starts(self) -> "tuple[datetime, ...]":
        """
        distinct interval starts present in the report, ascending.
        """
        return tuple(self._sorted_starts)

    def items_at(self, start: "datetime") -> "tuple[LineItem, ...]":
        """
        returns the bucket of items beginning exactly at start.
        """
        return tuple(self._items_by_start.get(start, ()))

    def ingest(self, item: "LineItem") -> "bool":
        """
        adds item to the report. Returns False, leaving the report
        untouched, when an item with the same uid and start is
        already stored.
        """
        with self._lock:
            stored = self._insert(item)

        if not stored:
            self._emit(
                DUPLICATE_LINE_ITEM,
                "line item already exists in report",
                uid=item.uid,
                start=item.start.isoformat(),
            )
        return stored

    def _insert(self, item: "LineItem") -> "bool":
        bucket = self._items_by_start.get(item.start)
        if bucket is not None:
            if any(existing.uid == item.uid for existing in bucket):
                return False
            bucket.append(item)
            return True

        self._items_by_start[item.start] = [item]

        # reports are mostly written in chronological order,
        # so most new starts go at the end
        if not self._sorted_starts or item.start > self._sorted_starts[-1]:
            self._sorted_starts.append(item.start)
        else:
            bisect.insort(self._sorted_starts, item.start)
        return True

    def range_query(
        self,
        window_start: "datetime",
        window_end: "datetime",
    ) -> "list[LineItem]":
        """
        returns the items whose interval overlaps the window, that is
        items ending strictly after window_start and starting at or
        before window_end.
        """
        with self._lock:
            # buckets starting after window_end cannot overlap
            stop = bisect.bisect_right(self._sorted_starts, window_end)
            return [
                item
                for start in self._sorted_starts[:stop]
                for item in self._items_by_start[start]
                if item.end > window_start
            ]

    def group_by_sum(
        self,
        fields: "Sequence[str]",
        window_start: "datetime",
        window_end: "datetime",
        *,
        lenient: "bool" = False,
    ) -> "dict[str, float]":
        """
        sums the unblended cost of the items overlapping the window,
        grouped by the values of fields joined with an underscore.

        Only items with a positive unblended cost are counted, so a
        group made solely of zero or negative costs does not appear
        in the result.

        An unknown field raises UnsupportedGroupField. With lenient
        set, unknown fields are reported as diagnostics and left out
        of the key instead.
        """
        accessors = []
        for field in fields:
            accessor = GROUP_FIELDS.get(field)
            if accessor is None:
                if not lenient:
                    raise UnsupportedGroupField(field)
                self._emit(
                    UNSUPPORTED_GROUP_FIELD,
                    "unsupported field to group by",
                    field=field,
                )
                continue
            accessors.append(accessor)

        totals: "dict[str, float]" = {}
        for item in self.range_query(window_start, window_end):
            # NaN fails the comparison and is skipped too
            if not item.unblended_cost > 0:
                continue
            key = KEY_SEPARATOR.join(accessor(item) for accessor in accessors)
            totals[key] = totals.get(key, 0.0) + item.unblended_cost

        return totals

    def _emit(self, kind: "str", message: "str", **details: "object") -> "None":
        diagnostic = Diagnostic(kind=kind, message=message, details=details)
        logger.warning(kind, **details)
        self.diagnostics.append(diagnostic)
        if self._observer is not None:
            self._observer(diagnostic)
