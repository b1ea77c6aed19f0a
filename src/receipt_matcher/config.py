import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values

from .logging import get_logger

log = get_logger("config")

QBO_ENVIRONMENTS = ("sandbox", "production")

_REQUIRED_KEYS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REFRESH_TOKEN",
    "RECEIPTS_MASTER_FOLDER_ID",
    "QBO_CLIENT_ID",
    "QBO_CLIENT_SECRET",
    "QBO_REFRESH_TOKEN",
    "QBO_REALM_ID",
)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised when required settings are missing or malformed."""

    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


@dataclass(frozen=True)
class MatcherConfig:
    google_client_id: str
    google_client_secret: str
    google_refresh_token: str
    master_folder_id: str
    qbo_client_id: str
    qbo_client_secret: str
    qbo_refresh_token: str
    qbo_realm_id: str
    qbo_environment: str = "production"
    processed_folder_name: str = "Processed"
    job_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    date_window_days: int = 2
    run_interval_seconds: int = 300
    tax_code: str = "TAX"
    allow_out_of_window_match: bool = True
    http_timeout: int = 30


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Lets the tool run from a subdirectory and still pick up repository-level
    `.env` and `job_map.json` files.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _coerce_job_map(data: object, source: str, problems: List[str]) -> Dict[str, str]:
    if not isinstance(data, dict):
        problems.append(f"{source} must be a JSON object mapping job names to customer ids")
        return {}
    return {str(k): str(v) for k, v in data.items()}


def load_job_map(raw: Optional[str], search_dir: str, problems: List[str]) -> Dict[str, str]:
    """Return the job map from the JOB_MAP value, else from job_map.json."""
    if raw and raw.strip():
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            problems.append(f"JOB_MAP is not valid JSON: {e}")
            return {}
        return _coerce_job_map(data, "JOB_MAP", problems)

    path = _find_upwards(search_dir, "job_map.json")
    if not path:
        log.info("No JOB_MAP or job_map.json found; customer references will be left unset")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        problems.append(f"Failed to read {path}: {e}")
        return {}
    job_map = _coerce_job_map(data, path, problems)
    log.info(f"Loaded job_map.json with {len(job_map)} entries from {path}")
    return job_map


def _int_setting(values: Mapping[str, str], key: str, default: int, minimum: int, problems: List[str]) -> int:
    raw = values.get(key)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        problems.append(f"{key} must be an integer, got {raw!r}")
        return default
    if value < minimum:
        problems.append(f"{key} must be >= {minimum}, got {value}")
        return default
    return value


def _bool_setting(values: Mapping[str, str], key: str, default: bool, problems: List[str]) -> bool:
    raw = values.get(key)
    if raw is None or not str(raw).strip():
        return default
    v = str(raw).strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    problems.append(f"{key} must be a boolean, got {raw!r}")
    return default


def load_config(dotenv_dir: str, environ: Optional[Mapping[str, str]] = None) -> MatcherConfig:
    """Build the immutable run configuration.

    Process environment wins over `.env`; `.env` is searched from dotenv_dir
    upwards. Every problem found is collected into a single ConfigError.
    """
    env = dict(os.environ if environ is None else environ)
    values: Dict[str, str] = {**_read_dotenv(dotenv_dir), **{k: v for k, v in env.items() if v}}
    problems: List[str] = []

    missing = [k for k in _REQUIRED_KEYS if not (values.get(k) or "").strip()]
    if missing:
        problems.append(f"Missing required setting(s): {', '.join(missing)}")

    qbo_environment = (values.get("QBO_ENVIRONMENT") or "production").strip().lower()
    if qbo_environment not in QBO_ENVIRONMENTS:
        problems.append(f"QBO_ENVIRONMENT must be one of {QBO_ENVIRONMENTS}, got {qbo_environment!r}")

    job_map = load_job_map(values.get("JOB_MAP"), dotenv_dir, problems)
    date_window_days = _int_setting(values, "DATE_WINDOW_DAYS", 2, 0, problems)
    run_interval_seconds = _int_setting(values, "RUN_INTERVAL_SECONDS", 300, 1, problems)
    http_timeout = _int_setting(values, "HTTP_TIMEOUT", 30, 1, problems)
    allow_fallback = _bool_setting(values, "ALLOW_OUT_OF_WINDOW_MATCH", True, problems)

    if problems:
        for p in problems:
            log.error(p)
        raise ConfigError(problems)

    def _get(key: str) -> str:
        return values[key].strip()

    config = MatcherConfig(
        google_client_id=_get("GOOGLE_CLIENT_ID"),
        google_client_secret=_get("GOOGLE_CLIENT_SECRET"),
        google_refresh_token=_get("GOOGLE_REFRESH_TOKEN"),
        master_folder_id=_get("RECEIPTS_MASTER_FOLDER_ID"),
        qbo_client_id=_get("QBO_CLIENT_ID"),
        qbo_client_secret=_get("QBO_CLIENT_SECRET"),
        qbo_refresh_token=_get("QBO_REFRESH_TOKEN"),
        qbo_realm_id=_get("QBO_REALM_ID"),
        qbo_environment=qbo_environment,
        processed_folder_name=(values.get("PROCESSED_FOLDER_NAME") or "Processed").strip(),
        job_map=MappingProxyType(job_map),
        date_window_days=date_window_days,
        run_interval_seconds=run_interval_seconds,
        tax_code=(values.get("QBO_TAX_CODE") or "TAX").strip(),
        allow_out_of_window_match=allow_fallback,
        http_timeout=http_timeout,
    )

    log.info("Configuration loaded")
    log.info(f"Master folder id   : {config.master_folder_id}")
    log.info(f"Processed folder   : {config.processed_folder_name}")
    log.info(f"QBO environment    : {config.qbo_environment}")
    log.info(f"QBO realm id       : {config.qbo_realm_id}")
    log.info(f"Job map entries    : {len(config.job_map)}")
    log.info(f"Date window (days) : {config.date_window_days}")
    log.info(f"Run interval       : {config.run_interval_seconds}s")
    return config
