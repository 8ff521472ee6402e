import dataclasses
import gzip
from pathlib import Path
from typing import Callable

import pytest
from prometheus_client import CollectorRegistry

from curquery.decoder import (
    IDENTITY_LINE_ITEM_ID,
    IDENTITY_TIME_INTERVAL,
    REQUIRED_COLUMNS,
    RecordDecoder,
)
from curquery.models import LineItem

# an extra column the decoder does not read, placed first so
# column positions differ from REQUIRED_COLUMNS
HEADER: "list[str]" = ["pricing/term", *REQUIRED_COLUMNS]

BASE_VALUES: "dict[str, str]" = {
    "pricing/term": "OnDemand",
    "identity/LineItemId": "li-1",
    "identity/TimeInterval": "2020-05-01T00:00:00Z/2020-05-01T01:00:00Z",
    "bill/Entity": "AWS",
    "bill/BillType": "Anniversary",
    "bill/InvoiceId": "EUINGB20-12345",
    "bill/PayerAccountId": "123456789012",
    "bill/BillingPeriodStartDate": "2020-05-01T00:00:00Z",
    "bill/BillingPeriodEndDate": "2020-06-01T00:00:00Z",
    "lineItem/AvailabilityZone": "us-east-1a",
    "lineItem/BlendedCost": "0.0104",
    "lineItem/BlendedRate": "0.0104",
    "lineItem/CurrencyCode": "USD",
    "lineItem/LegalEntity": "Amazon Web Services Inc.",
    "lineItem/LineItemDescription": "$0.0104 per On Demand Linux t3.micro Instance Hour",
    "lineItem/LineItemType": "Usage",
    "lineItem/NormalizationFactor": "0.5",
    "lineItem/Operation": "RunInstances",
    "lineItem/ProductCode": "AmazonEC2",
    "lineItem/ResourceId": "i-0abc123def4567890",
    "lineItem/TaxType": "",
    "lineItem/UnblendedCost": "0.0104",
    "lineItem/UnblendedRate": "0.0104",
    "lineItem/UsageAccountId": "210987654321",
    "lineItem/UsageAmount": "1.0",
    "lineItem/UsageStartDate": "2020-05-01T00:00:00Z",
    "lineItem/UsageEndDate": "2020-05-01T01:00:00Z",
    "lineItem/UsageType": "BoxUsage:t3.micro",
}


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def header() -> "list[str]":
    return list(HEADER)


@pytest.fixture()
def make_row() -> "Callable[..., list[str]]":
    """
    builds a report row in HEADER order, overriding columns
    by their report name.
    """

    def _make_row(overrides: "dict[str, str] | None" = None) -> "list[str]":
        values = {**BASE_VALUES, **(overrides or {})}
        return [values[column] for column in HEADER]

    return _make_row


@pytest.fixture()
def make_item(
    header: "list[str]",
    make_row: "Callable[..., list[str]]",
) -> "Callable[..., LineItem]":
    """
    builds a decoded LineItem for an identifier and interval,
    with any other attribute replaced through keyword arguments.
    """
    decoder = RecordDecoder.from_header(header)

    def _make_item(
        line_item_id: "str" = "li-1",
        interval: "str" = "2020-05-01T00:00:00Z/2020-05-01T01:00:00Z",
        **changes: "object",
    ) -> "LineItem":
        item = decoder.decode(
            make_row(
                {
                    IDENTITY_LINE_ITEM_ID: line_item_id,
                    IDENTITY_TIME_INTERVAL: interval,
                }
            )
        )
        return dataclasses.replace(item, **changes)

    return _make_item


@pytest.fixture()
def write_report(tmp_path: "Path") -> "Callable[..., str]":
    """
    writes rows under a header to a report file and returns its
    path. Names ending in .gz are gzip compressed.
    """

    def _write_report(
        rows: "list[list[str]]",
        name: "str" = "report.csv.gz",
        header: "list[str] | None" = None,
    ) -> "str":
        lines = [header or HEADER, *rows]
        text = "".join(",".join(fields) + "\n" for fields in lines)
        path = tmp_path / name
        if name.endswith(".gz"):
            with gzip.open(path, "wt", encoding="utf-8") as fh:
                fh.write(text)
        else:
            path.write_text(text, encoding="utf-8")
        return str(path)

    return _write_report
