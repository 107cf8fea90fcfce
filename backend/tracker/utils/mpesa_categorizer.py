"""
Keyword categorisation of M-Pesa transaction details.

``categorize`` maps the free-text details column of a statement row to one
of eight M-Pesa categories. The first matching rule wins, so the order of
``CATEGORY_RULES`` is significant.
"""

from typing import Dict, List, Tuple

AIRTIME = "Airtime"
BILLS = "Bills"
SHOPPING = "Shopping"
TRANSFER = "Transfer"
INCOME = "Income"
WITHDRAWAL = "Withdrawal"
TRANSPORT = "Transport"
OTHER = "Other"

CATEGORY_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("airtime", "data"), AIRTIME),
    (("paybill", "bill"), BILLS),
    (("till", "merchant"), SHOPPING),
    (("sent to", "transfer"), TRANSFER),
    (("received from", "deposit"), INCOME),
    (("withdraw", "agent"), WITHDRAWAL),
    (("fare", "transport"), TRANSPORT),
]

MPESA_CATEGORIES: Dict[str, str] = {
    AIRTIME: "Airtime & Data",
    SHOPPING: "Shopping & Merchants",
    BILLS: "Bills & Paybill",
    TRANSPORT: "Transport & Fuel",
    TRANSFER: "Send Money",
    INCOME: "Receive Money",
    WITHDRAWAL: "Cash Withdrawal",
    OTHER: "Other",
}


def categorize(details: str) -> str:
    """
    Return the M-Pesa category for a details string.

    Matching is a case-insensitive substring test. Empty or unmatched
    details fall back to ``Other``.

    Example:
        >>> categorize("Payment to JOE SUPERMARKET Till 12345")
        'Shopping'
    """
    text = (details or "").casefold()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return category
    return OTHER
