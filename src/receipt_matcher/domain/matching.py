from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Sequence, Tuple

from ..logging import get_logger
from .models import ParsedReceipt

_LOG = get_logger("matching")


def query_window(receipt_date: date, window_days: int) -> Tuple[date, date]:
    """Return the inclusive (start, end) date range used for the ledger query."""
    delta = timedelta(days=window_days)
    return receipt_date - delta, receipt_date + delta


def parse_txn_date(value: Any) -> Optional[date]:
    """Parse a QBO TxnDate (YYYY-MM-DD); None if missing or malformed."""
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def within_window(receipt_date: date, txn_date: date, window_days: int) -> bool:
    return abs((receipt_date - txn_date).days) <= window_days


def find_match(
    receipt: ParsedReceipt,
    candidates: Sequence[Dict[str, Any]],
    window_days: int,
    *,
    allow_fallback: bool = True,
) -> Optional[Dict[str, Any]]:
    """Pick the purchase a receipt belongs to.

    The first candidate (in query order, not the closest one) whose TxnDate is
    within window_days of the receipt date wins. With allow_fallback, the first
    candidate is returned when none passes the window check.
    """
    if not candidates:
        return None

    if receipt.date is not None:
        for purchase in candidates:
            txn_date = parse_txn_date(purchase.get("TxnDate"))
            if txn_date is not None and within_window(receipt.date, txn_date, window_days):
                return purchase

    if allow_fallback:
        first = candidates[0]
        _LOG.warning(
            "No candidate within %s day(s) of %s; falling back to first result (Id=%s, TxnDate=%s)",
            window_days,
            receipt.date,
            first.get("Id"),
            first.get("TxnDate"),
        )
        return first
    return None
