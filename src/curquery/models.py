from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Bill:
    """
    Bill holds the billing statement metadata attached
    to a single line item.
    """

    billing_entity: "str"
    bill_type: "str"
    invoice_id: "str"
    # unsigned 64-bit account number
    payer_account_id: "int"
    billing_period_start: "datetime"
    billing_period_end: "datetime"


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    LineItem represents one billed row of a cost and usage
    report, covering the [start, end) interval.
    """

    # hash of identity/LineItemId, only used for de-duplication
    uid: "int"
    start: "datetime"
    end: "datetime"

    availability_zone: "str"
    blended_cost: "float"
    blended_rate: "float"
    currency_code: "str"
    legal_entity: "str"
    line_item_description: "str"
    line_item_type: "str"
    # None when the report leaves the column empty
    normalization_factor: "float | None"
    operation: "str"
    product_code: "str"
    resource_id: "str"
    tax_type: "str"
    unblended_cost: "float"
    # None when the report leaves the column empty
    unblended_rate: "float | None"
    usage_account_id: "str"
    usage_amount: "float"
    usage_start_date: "datetime"
    usage_end_date: "datetime"
    usage_type: "str"

    bill: "Bill"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """
    Diagnostic is a structured warning raised while ingesting
    or querying a report. Diagnostics are not errors.
    """

    kind: "str"
    message: "str"
    details: "dict[str, Any]" = field(default_factory=dict)
