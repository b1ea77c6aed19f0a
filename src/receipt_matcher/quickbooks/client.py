import json
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from ..auth import INTUIT_TOKEN_URL, RefreshTokenAuth
from ..logging import get_logger

SANDBOX_BASE_URL = "https://sandbox-quickbooks.api.intuit.com"
PRODUCTION_BASE_URL = "https://quickbooks.api.intuit.com"
MINOR_VERSION = 75
MAX_RESULTS = 20


def base_url_for(environment: str) -> str:
    return SANDBOX_BASE_URL if environment == "sandbox" else PRODUCTION_BASE_URL


def build_purchase_query(start: date, end: date, amount: Decimal) -> str:
    return (
        "select * from Purchase "
        f"where TxnDate >= '{start.isoformat()}' "
        f"and TxnDate <= '{end.isoformat()}' "
        f"and TotalAmt = '{amount}' "
        f"maxresults {MAX_RESULTS}"
    )


class QuickBooksClient:
    """Thin client for the QuickBooks Online v3 accounting API.

    Covers purchase queries, full purchase updates and attachment uploads for a
    single company (realm). Every call takes the run's access token explicitly.
    """

    def __init__(
        self,
        auth: RefreshTokenAuth,
        realm_id: str,
        *,
        environment: str = "production",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.auth = auth
        self.realm_id = realm_id
        self.base = base_url_for(environment)
        self.timeout = int(timeout)
        self.log = get_logger("quickbooks-client")
        self.s = session or requests.Session()

    @classmethod
    def from_credentials(
        cls,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        realm_id: str,
        *,
        environment: str = "production",
        timeout: int = 30,
    ) -> "QuickBooksClient":
        auth = RefreshTokenAuth(
            INTUIT_TOKEN_URL,
            client_id,
            client_secret,
            refresh_token,
            use_basic_auth=True,
            timeout=timeout,
            name="quickbooks",
        )
        return cls(auth, realm_id, environment=environment, timeout=timeout)

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        return f"{self.base}/v3/company/{self.realm_id}{path}"

    @staticmethod
    def _headers(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

    def _json(self, r: requests.Response) -> Any:
        r.raise_for_status()
        return r.json()

    def _log_failure(self, what: str, e: requests.RequestException) -> None:
        self.log.error(f"{what} failed: {e}")
        response = getattr(e, "response", None)
        if response is not None:
            self.log.error(f"{what} response preview: {response.text[:500]}")

    # ---------- auth ----------
    def get_access_token(self) -> str:
        return self.auth.get_access_token()

    # ---------- purchases ----------
    def query_purchases(self, access_token: str, start: date, end: date, amount: Decimal) -> List[Dict[str, Any]]:
        query = build_purchase_query(start, end, amount)
        self.log.debug(f"QBO query: {query}")
        try:
            r = self.s.get(
                self._url("/query"),
                params={"query": query, "minorversion": MINOR_VERSION},
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
            data = self._json(r) or {}
        except requests.RequestException as e:
            self._log_failure("Purchase query", e)
            raise
        purchases = (data.get("QueryResponse") or {}).get("Purchase") or []
        return [p for p in purchases if isinstance(p, dict)]

    def update_purchase(self, access_token: str, purchase: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        headers = self._headers(access_token)
        headers["Content-Type"] = "application/json"
        try:
            r = self.s.post(
                self._url("/purchase"),
                params={"minorversion": MINOR_VERSION},
                json=purchase,
                headers=headers,
                timeout=self.timeout,
            )
            data = self._json(r) or {}
        except requests.RequestException as e:
            self._log_failure(f"Update of purchase {purchase.get('Id')}", e)
            raise
        updated = data.get("Purchase")
        return updated if isinstance(updated, dict) else None

    # ---------- attachments ----------
    def upload_attachment(
        self,
        access_token: str,
        purchase_id: str,
        content: bytes,
        file_name: str,
        *,
        content_type: str = "application/pdf",
    ) -> Dict[str, Any]:
        metadata = {
            "AttachableRef": [{"EntityRef": {"type": "Purchase", "value": str(purchase_id)}}],
            "FileName": file_name,
            "ContentType": content_type,
        }
        files = {
            "file_metadata_01": (None, json.dumps(metadata), "application/json; charset=UTF-8"),
            "file_content_01": (file_name, content, content_type),
        }
        self.log.debug(f"Uploading {len(content)} byte(s) as '{file_name}' to purchase {purchase_id}")
        try:
            r = self.s.post(
                self._url("/upload"),
                params={"minorversion": MINOR_VERSION},
                files=files,
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
            return self._json(r) or {}
        except requests.RequestException as e:
            self._log_failure(f"Attachment upload for purchase {purchase_id}", e)
            raise
