import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from receipt_matcher.domain.matching import find_match, parse_txn_date, query_window
from receipt_matcher.domain.models import ParsedReceipt

RECEIPT_DATE = date(2025, 11, 21)
RECEIPT = ParsedReceipt(vendor="HomeDepot", job_name="81", amount=Decimal("298.00"), date=RECEIPT_DATE)


def _purchase(pid: str, offset_days: int) -> dict:
    return {"Id": pid, "TxnDate": (RECEIPT_DATE + timedelta(days=offset_days)).isoformat()}


def test_query_window_is_symmetric():
    assert query_window(RECEIPT_DATE, 2) == (date(2025, 11, 19), date(2025, 11, 23))


def test_first_candidate_in_window_wins_not_the_closest():
    candidates = [_purchase("a", -3), _purchase("b", 0), _purchase("c", 1)]
    assert find_match(RECEIPT, candidates, 2)["Id"] == "b"

    candidates = [_purchase("a", -3), _purchase("c", 2), _purchase("b", 0)]
    assert find_match(RECEIPT, candidates, 2)["Id"] == "c"


def test_window_is_inclusive():
    assert find_match(RECEIPT, [_purchase("edge", -2)], 2, allow_fallback=False)["Id"] == "edge"


def test_empty_candidates_returns_none():
    assert find_match(RECEIPT, [], 2) is None


def test_falls_back_to_first_candidate_outside_window():
    candidates = [_purchase("far", 10), _purchase("farther", -12)]
    assert find_match(RECEIPT, candidates, 2)["Id"] == "far"


def test_no_fallback_when_disabled():
    candidates = [_purchase("far", 10)]
    assert find_match(RECEIPT, candidates, 2, allow_fallback=False) is None


def test_malformed_txn_date_never_satisfies_window():
    candidates = [{"Id": "bad", "TxnDate": "not-a-date"}, _purchase("ok", 1)]
    assert find_match(RECEIPT, candidates, 2)["Id"] == "ok"


def test_parse_txn_date():
    assert parse_txn_date("2025-11-21") == RECEIPT_DATE
    assert parse_txn_date(None) is None
    assert parse_txn_date("11/21/2025") is None
