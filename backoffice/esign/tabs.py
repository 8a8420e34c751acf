# backoffice/esign/tabs.py

"""
Maps ContractFields onto the tab collections of the contract template.

Rules:
- A value is emitted only when it is not None and not blank once trimmed.
- Numerical entries whose label is in NUMERIC_TAB_LABELS become number tabs;
  every other numerical entry (phone, model year, mileage) becomes a text tab
  with its value untouched.
- The VIN goes to its own number tab and never to the text tabs.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from backoffice.esign.schemas import ContractFields, FieldValue, TabCategory

Tab = Dict[str, str]

TAB_COLLECTIONS = {
    TabCategory.FULL_NAME: "fullNameTabs",
    TabCategory.EMAIL: "emailTabs",
    TabCategory.TEXT: "textTabs",
    TabCategory.NUMERICAL: "numberTabs",
    TabCategory.LIST: "listTabs",
}

# Currency and quantity labels on the template that accept number formatting
NUMERIC_TAB_LABELS = frozenset({
    "Contract Price",
    "Down Payment",
    "Monthly Payment",
    "Number of Payments",
    "Amount Financed",
    "Deductible",
    "Term Months",
    "Sales Tax",
})

VIN_TAB_LABEL = "VIN"


def normalize_value(raw: FieldValue) -> Optional[str]:
    """Stringify and trim a value; None when nothing is left."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        value = "true" if raw else "false"
    elif isinstance(raw, float) and raw.is_integer():
        value = str(int(raw))
    elif isinstance(raw, Decimal):
        value = format(raw, "f")
    else:
        value = str(raw)
    return value.strip() or None


def _destination(category: TabCategory, label: str) -> str:
    if category is TabCategory.NUMERICAL and label not in NUMERIC_TAB_LABELS:
        return TAB_COLLECTIONS[TabCategory.TEXT]
    return TAB_COLLECTIONS[category]


def _resolve_vin(fields: ContractFields) -> Optional[str]:
    vin = normalize_value(fields.vin)
    if vin:
        return vin
    for category in (TabCategory.TEXT, TabCategory.NUMERICAL):
        vin = normalize_value(fields.bucket(category).get(VIN_TAB_LABEL))
        if vin:
            return vin
    return None


def build_template_tabs(fields: ContractFields) -> Optional[Dict[str, List[Tab]]]:
    """
    Build the `tabs` object of a template role.

    Returns:
        Only the non-empty collections, in a fixed order, or None when no
        field has a value.
    """
    collections: Dict[str, List[Tab]] = {name: [] for name in TAB_COLLECTIONS.values()}

    for category in TabCategory:
        for label, raw in fields.bucket(category).items():
            if label == VIN_TAB_LABEL and category in (TabCategory.TEXT, TabCategory.NUMERICAL):
                continue
            value = normalize_value(raw)
            if value is None:
                continue
            collections[_destination(category, label)].append({"tabLabel": label, "value": value})

    vin = _resolve_vin(fields)
    if vin:
        collections[TAB_COLLECTIONS[TabCategory.NUMERICAL]].append(
            {"tabLabel": VIN_TAB_LABEL, "value": vin}
        )

    tabs = {name: entries for name, entries in collections.items() if entries}
    return tabs or None
