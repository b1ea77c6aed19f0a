"""
Receipt Matcher: attach Google Drive receipt PDFs to QuickBooks Online expenses.

Shared modules (config, logging) sit at the top level; filename parsing,
matching and purchase mutation live in `domain`, the two API clients in
`drive` and `quickbooks`, and the run loop in `orchestrator`.
"""

__all__ = [
    "config",
    "logging",
]
