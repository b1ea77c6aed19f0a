import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from receipt_matcher.config import ConfigError, load_config

BASE_ENV = {
    "GOOGLE_CLIENT_ID": "gid",
    "GOOGLE_CLIENT_SECRET": "gsecret",
    "GOOGLE_REFRESH_TOKEN": "grefresh",
    "RECEIPTS_MASTER_FOLDER_ID": "master",
    "QBO_CLIENT_ID": "qid",
    "QBO_CLIENT_SECRET": "qsecret",
    "QBO_REFRESH_TOKEN": "qrefresh",
    "QBO_REALM_ID": "realm",
}


def test_defaults(tmp_path: Path) -> None:
    config = load_config(str(tmp_path), environ=BASE_ENV)
    assert config.processed_folder_name == "Processed"
    assert config.qbo_environment == "production"
    assert config.date_window_days == 2
    assert config.run_interval_seconds == 300
    assert config.tax_code == "TAX"
    assert config.allow_out_of_window_match is True
    assert dict(config.job_map) == {}


def test_environment_overrides_and_job_map(tmp_path: Path) -> None:
    env = {
        **BASE_ENV,
        "QBO_ENVIRONMENT": "Sandbox",
        "JOB_MAP": json.dumps({"81": "123", "mike": 456}),
        "DATE_WINDOW_DAYS": "3",
        "ALLOW_OUT_OF_WINDOW_MATCH": "false",
        "PROCESSED_FOLDER_NAME": "Done",
    }
    config = load_config(str(tmp_path), environ=env)
    assert config.qbo_environment == "sandbox"
    assert dict(config.job_map) == {"81": "123", "mike": "456"}
    assert config.date_window_days == 3
    assert config.allow_out_of_window_match is False
    assert config.processed_folder_name == "Done"


def test_config_is_immutable(tmp_path: Path) -> None:
    config = load_config(str(tmp_path), environ=BASE_ENV)
    with pytest.raises(AttributeError):
        config.date_window_days = 5  # type: ignore[misc]
    with pytest.raises(TypeError):
        config.job_map["x"] = "y"  # type: ignore[index]


def test_dotenv_values_are_used_and_env_wins(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "\n".join(f"{k}={v}" for k, v in BASE_ENV.items()) + "\nDATE_WINDOW_DAYS=5\nQBO_REALM_ID=from-file\n",
        encoding="utf-8",
    )
    sub = tmp_path / "sub"
    sub.mkdir()
    config = load_config(str(sub), environ={"QBO_REALM_ID": "from-env"})
    assert config.date_window_days == 5
    assert config.qbo_realm_id == "from-env"
    assert config.master_folder_id == "master"


def test_job_map_file_fallback(tmp_path: Path) -> None:
    (tmp_path / "job_map.json").write_text(json.dumps({"81": "123"}), encoding="utf-8")
    config = load_config(str(tmp_path), environ=BASE_ENV)
    assert dict(config.job_map) == {"81": "123"}


def test_all_problems_are_reported(tmp_path: Path) -> None:
    env = {k: v for k, v in BASE_ENV.items() if k != "QBO_REALM_ID"}
    env.update({"QBO_ENVIRONMENT": "staging", "DATE_WINDOW_DAYS": "two", "JOB_MAP": "[1, 2]"})
    with pytest.raises(ConfigError) as info:
        load_config(str(tmp_path), environ=env)
    problems = info.value.problems
    assert any("QBO_REALM_ID" in p for p in problems)
    assert any("QBO_ENVIRONMENT" in p for p in problems)
    assert any("DATE_WINDOW_DAYS" in p for p in problems)
    assert any("JOB_MAP" in p for p in problems)
