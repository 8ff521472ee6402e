import math
from datetime import datetime, timezone
from typing import Mapping, Sequence

from curquery.errors import (
    InvalidIdentifier,
    InvalidNumber,
    InvalidTimestamp,
    InvertedInterval,
    MalformedInterval,
)
from curquery.hashing import IdentityHasher
from curquery.models import Bill, LineItem

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_MAX_UINT64 = 2**64 - 1

# report columns read by the decoder, in report order
IDENTITY_LINE_ITEM_ID = "identity/LineItemId"
IDENTITY_TIME_INTERVAL = "identity/TimeInterval"
BILL_ENTITY = "bill/Entity"
BILL_TYPE = "bill/BillType"
BILL_INVOICE_ID = "bill/InvoiceId"
BILL_PAYER_ACCOUNT_ID = "bill/PayerAccountId"
BILL_PERIOD_START = "bill/BillingPeriodStartDate"
BILL_PERIOD_END = "bill/BillingPeriodEndDate"
AVAILABILITY_ZONE = "lineItem/AvailabilityZone"
BLENDED_COST = "lineItem/BlendedCost"
BLENDED_RATE = "lineItem/BlendedRate"
CURRENCY_CODE = "lineItem/CurrencyCode"
LEGAL_ENTITY = "lineItem/LegalEntity"
LINE_ITEM_DESCRIPTION = "lineItem/LineItemDescription"
LINE_ITEM_TYPE = "lineItem/LineItemType"
NORMALIZATION_FACTOR = "lineItem/NormalizationFactor"
OPERATION = "lineItem/Operation"
PRODUCT_CODE = "lineItem/ProductCode"
RESOURCE_ID = "lineItem/ResourceId"
TAX_TYPE = "lineItem/TaxType"
UNBLENDED_COST = "lineItem/UnblendedCost"
UNBLENDED_RATE = "lineItem/UnblendedRate"
USAGE_ACCOUNT_ID = "lineItem/UsageAccountId"
USAGE_AMOUNT = "lineItem/UsageAmount"
USAGE_START_DATE = "lineItem/UsageStartDate"
USAGE_END_DATE = "lineItem/UsageEndDate"
USAGE_TYPE = "lineItem/UsageType"

REQUIRED_COLUMNS: "tuple[str, ...]" = (
    IDENTITY_LINE_ITEM_ID,
    IDENTITY_TIME_INTERVAL,
    BILL_ENTITY,
    BILL_TYPE,
    BILL_INVOICE_ID,
    BILL_PAYER_ACCOUNT_ID,
    BILL_PERIOD_START,
    BILL_PERIOD_END,
    AVAILABILITY_ZONE,
    BLENDED_COST,
    BLENDED_RATE,
    CURRENCY_CODE,
    LEGAL_ENTITY,
    LINE_ITEM_DESCRIPTION,
    LINE_ITEM_TYPE,
    NORMALIZATION_FACTOR,
    OPERATION,
    PRODUCT_CODE,
    RESOURCE_ID,
    TAX_TYPE,
    UNBLENDED_COST,
    UNBLENDED_RATE,
    USAGE_ACCOUNT_ID,
    USAGE_AMOUNT,
    USAGE_START_DATE,
    USAGE_END_DATE,
    USAGE_TYPE,
)


def parse_timestamp(field: "str", value: "str") -> "datetime":
    """
    parses a report timestamp such as 2020-05-01T00:00:00Z into
    an aware UTC datetime.
    """
    try:
        parsed = datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        raise InvalidTimestamp(field, value) from None
    # strptime also takes unpadded fields such as 2020-5-1T0:0:0Z
    if parsed.strftime(TIMESTAMP_FORMAT) != value:
        raise InvalidTimestamp(field, value)
    return parsed.replace(tzinfo=timezone.utc)


def parse_float(field: "str", value: "str") -> "float":
    # float() tolerates padding and digit separators, the report format does not
    if value != value.strip() or "_" in value:
        raise InvalidNumber(field, value)
    try:
        number = float(value)
    except ValueError:
        raise InvalidNumber(field, value) from None
    # rejects nan, inf and overflowing literals such as 1e309
    if not math.isfinite(number):
        raise InvalidNumber(field, value)
    return number


def parse_optional_float(field: "str", value: "str") -> "float | None":
    """
    same as parse_float, except that an empty column decodes
    to None. Any other malformed value still raises.
    """
    if value == "":
        return None
    return parse_float(field, value)


def parse_uint64(field: "str", value: "str") -> "int":
    if not (value.isascii() and value.isdigit()):
        raise InvalidNumber(field, value)
    number = int(value)
    if number > _MAX_UINT64:
        raise InvalidNumber(field, value)
    return number


def parse_interval(value: "str") -> "tuple[datetime, datetime]":
    parts = value.split("/")
    if len(parts) != 2:
        raise MalformedInterval(value)

    start = parse_timestamp("interval start", parts[0])
    end = parse_timestamp("interval end", parts[1])
    if end < start:
        raise InvertedInterval(value)
    return start, end


def build_header_index(header: "Sequence[str]") -> "dict[str, int]":
    """
    maps each column name to its position. Later duplicates of a
    column name win, mirroring a plain dict build.
    """
    return {name: i for i, name in enumerate(header)}


class RecordDecoder:
    """
    RecordDecoder turns one report row (a list of string fields)
    into a validated LineItem with its embedded Bill.

    The decoder is bound to the header of the report it reads.
    Construction fails with InvalidIdentifier when the header lacks
    a column the decoder needs, so a report with the wrong shape is
    rejected before any row is looked at.
    """

    def __init__(
        self,
        header_index: "Mapping[str, int]",
        hasher: "IdentityHasher | None" = None,
    ) -> "None":
        missing = [c for c in REQUIRED_COLUMNS if c not in header_index]
        if missing:
            raise InvalidIdentifier(
                missing[0],
                f"report header is missing columns: {', '.join(missing)}",
            )

        self._index: "dict[str, int]" = {c: header_index[c] for c in REQUIRED_COLUMNS}
        self._width: "int" = max(self._index.values()) + 1
        self._hasher: "IdentityHasher" = hasher or IdentityHasher()

    @classmethod
    def from_header(
        cls,
        header: "Sequence[str]",
        hasher: "IdentityHasher | None" = None,
    ) -> "RecordDecoder":
        return cls(build_header_index(header), hasher)

    def decode(self, row: "Sequence[str]") -> "LineItem":
        """
        decodes a row. Raises a DecodeError subclass naming the
        column that could not be parsed.
        """
        if len(row) < self._width:
            short = next(c for c, i in self._index.items() if i >= len(row))
            raise InvalidIdentifier(
                short,
                f"row has {len(row)} fields, column {short} is at position {self._index[short]}",
            )

        def col(name: "str") -> "str":
            return row[self._index[name]]

        start, end = parse_interval(col(IDENTITY_TIME_INTERVAL))

        bill = Bill(
            billing_entity=col(BILL_ENTITY),
            bill_type=col(BILL_TYPE),
            invoice_id=col(BILL_INVOICE_ID),
            payer_account_id=parse_uint64(
                BILL_PAYER_ACCOUNT_ID, col(BILL_PAYER_ACCOUNT_ID)
            ),
            billing_period_start=parse_timestamp(
                BILL_PERIOD_START, col(BILL_PERIOD_START)
            ),
            billing_period_end=parse_timestamp(BILL_PERIOD_END, col(BILL_PERIOD_END)),
        )

        return LineItem(
            uid=self._hasher(col(IDENTITY_LINE_ITEM_ID)),
            start=start,
            end=end,
            availability_zone=col(AVAILABILITY_ZONE),
            blended_cost=parse_float(BLENDED_COST, col(BLENDED_COST)),
            blended_rate=parse_float(BLENDED_RATE, col(BLENDED_RATE)),
            currency_code=col(CURRENCY_CODE),
            legal_entity=col(LEGAL_ENTITY),
            line_item_description=col(LINE_ITEM_DESCRIPTION),
            line_item_type=col(LINE_ITEM_TYPE),
            normalization_factor=parse_optional_float(
                NORMALIZATION_FACTOR, col(NORMALIZATION_FACTOR)
            ),
            operation=col(OPERATION),
            product_code=col(PRODUCT_CODE),
            resource_id=col(RESOURCE_ID),
            tax_type=col(TAX_TYPE),
            unblended_cost=parse_float(UNBLENDED_COST, col(UNBLENDED_COST)),
            unblended_rate=parse_optional_float(UNBLENDED_RATE, col(UNBLENDED_RATE)),
            usage_account_id=col(USAGE_ACCOUNT_ID),
            usage_amount=parse_float(USAGE_AMOUNT, col(USAGE_AMOUNT)),
            usage_start_date=parse_timestamp(USAGE_START_DATE, col(USAGE_START_DATE)),
            usage_end_date=parse_timestamp(USAGE_END_DATE, col(USAGE_END_DATE)),
            usage_type=col(USAGE_TYPE),
            bill=bill,
        )
