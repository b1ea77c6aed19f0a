import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from receipt_matcher.cli.main import main


def test_parse_prints_structured_record(capsys: pytest.CaptureFixture) -> None:
    code = main(["parse", "HomeDepot_81_11-21-2025_$298.00.pdf"])
    out = json.loads(capsys.readouterr().out.strip())
    assert code == 0
    assert out["parsed"] == {
        "vendor": "HomeDepot",
        "job_name": "81",
        "date": "2025-11-21",
        "amount": "298.00",
    }
    assert out["actionable"] is True


def test_parse_flags_unusable_names(capsys: pytest.CaptureFixture) -> None:
    code = main(["parse", "Vendor_Only_Two.pdf", "Vendor_Job_11-21-2025_NotANumber.pdf"])
    lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
    assert code == 1
    assert lines[0]["parsed"] is None
    assert lines[1]["parsed"]["amount"] is None
    assert lines[1]["actionable"] is False


def test_once_exits_with_error_on_bad_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for key in ("GOOGLE_CLIENT_ID", "RECEIPTS_MASTER_FOLDER_ID", "QBO_REALM_ID", "JOB_MAP"):
        monkeypatch.delenv(key, raising=False)
    with pytest.raises(SystemExit) as info:
        main(["once"])
    assert info.value.code == 1
