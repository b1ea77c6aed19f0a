import re
from datetime import date
from decimal import Decimal
from typing import Optional

from ..logging import get_logger
from .models import ParsedReceipt

_LOG = get_logger("filename")

RECEIPT_EXTENSION = ".pdf"
NO_JOB = "NoJob"
NO_DATE = "NoDate"

_AMOUNT_RE = re.compile(r"([0-9]+(?:\.[0-9]{1,2})?)")


def _parse_us_date(token: str) -> Optional[date]:
    """Interpret MM-DD-YYYY; returns None for non-numeric parts or impossible dates."""
    parts = token.split("-")
    try:
        mm, dd, yyyy = (int(p) for p in parts)
        return date(yyyy, mm, dd)
    except ValueError:
        return None


def _parse_amount(text: str) -> Optional[Decimal]:
    m = _AMOUNT_RE.search(text)
    return Decimal(m.group(1)) if m else None


def parse_receipt_filename(name: str) -> Optional[ParsedReceipt]:
    """Parse `Vendor_Job_MM-DD-YYYY_$Amount.pdf` into a ParsedReceipt.

    Returns None when the name lacks the .pdf extension, has fewer than four
    underscore-separated segments, or the date token does not have three
    dash-separated parts. A result may still carry amount=None or date=None;
    callers check `is_actionable` before using it.

    Example: "HomeDepot_81_11-21-2025_$298.00.pdf" ->
    vendor="HomeDepot", job_name="81", date=2025-11-21, amount=Decimal("298.00")
    """
    if not name or not name.lower().endswith(RECEIPT_EXTENSION):
        return None
    clean = name[: -len(RECEIPT_EXTENSION)]

    parts = clean.split("_")
    if len(parts) < 4:
        return None

    vendor = parts[0]
    job_name = parts[1] or NO_JOB
    date_token = parts[2] or NO_DATE
    # amounts may themselves contain underscores
    amount_text = "_".join(parts[3:])

    if len(date_token.split("-")) != 3:
        _LOG.debug(f"Date token {date_token!r} is not MM-DD-YYYY in {name!r}")
        return None

    return ParsedReceipt(
        vendor=vendor,
        job_name=job_name,
        amount=_parse_amount(amount_text),
        date=_parse_us_date(date_token),
    )
