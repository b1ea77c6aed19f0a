"""High-level orchestration for matching Drive receipts to QuickBooks purchases."""

from .flow import ReceiptMatcher, build_clients
from .schedule import run_forever, run_tick

__all__ = [
    "ReceiptMatcher",
    "build_clients",
    "run_forever",
    "run_tick",
]
