from typing import Callable

from curquery.models import LineItem

# group-by field name -> accessor returning the key segment
GROUP_FIELDS: "dict[str, Callable[[LineItem], str]]" = {
    "lineItem/LineItemType": lambda item: item.line_item_type,
    "lineItem/Operation": lambda item: item.operation,
    "lineItem/ProductCode": lambda item: item.product_code,
    "lineItem/ResourceId": lambda item: item.resource_id,
    "lineItem/TaxType": lambda item: item.tax_type,
    "lineItem/UsageAccountId": lambda item: item.usage_account_id,
    "lineItem/UsageType": lambda item: item.usage_type,
    "bill/PayerAccountId": lambda item: str(item.bill.payer_account_id),
}

KEY_SEPARATOR = "_"
