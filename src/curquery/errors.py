class CurQueryError(Exception):
    """
    base class for every error raised by curquery.
    """


class DecodeError(CurQueryError):
    """
    DecodeError is raised when a report row cannot be turned
    into a LineItem. field names the offending column.
    """

    def __init__(self, field: "str", message: "str") -> "None":
        super().__init__(message)
        self.field = field


class MalformedInterval(DecodeError):
    def __init__(self, value: "str", message: "str | None" = None) -> "None":
        super().__init__(
            "identity/TimeInterval",
            message or f"invalid time interval {value!r}, expected '<start>/<end>'",
        )
        self.value = value


class InvertedInterval(MalformedInterval):
    def __init__(self, value: "str") -> "None":
        super().__init__(value, f"time interval {value!r} ends before it starts")


class InvalidTimestamp(DecodeError):
    def __init__(self, field: "str", value: "str") -> "None":
        super().__init__(field, f"could not parse {field} timestamp {value!r}")
        self.value = value


class InvalidNumber(DecodeError):
    def __init__(self, field: "str", value: "str") -> "None":
        super().__init__(field, f"could not parse {field} number {value!r}")
        self.value = value


class InvalidIdentifier(DecodeError):
    """
    raised when a row does not carry a column the decoder needs,
    either because the header lacks it or the row is too short.
    """

    def __init__(self, field: "str", message: "str | None" = None) -> "None":
        super().__init__(field, message or f"row has no value for column {field}")


class UnsupportedGroupField(CurQueryError, ValueError):
    def __init__(self, field: "str") -> "None":
        super().__init__(f"unsupported field to group by: {field}")
        self.field = field
