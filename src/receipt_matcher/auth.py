import time
from typing import Any, Dict, Optional

import requests

from .logging import get_logger

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
INTUIT_TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"

# Refresh a little before the provider-reported expiry.
_EXPIRY_SLACK_SECONDS = 60


class RefreshTokenAuth:
    """OAuth2 refresh-token grant against a provider token endpoint.

    Google accepts client credentials in the form body; Intuit requires HTTP
    basic auth (use_basic_auth=True). A rotated refresh_token returned by the
    provider replaces the in-memory one. Access tokens are cached until shortly
    before their reported expiry.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        use_basic_auth: bool = False,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        name: str = "oauth",
    ) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.use_basic_auth = bool(use_basic_auth)
        self.timeout = int(timeout)
        self.s = session or requests.Session()
        self.log = get_logger(f"{name}-auth")
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0

    def _request_body(self) -> Dict[str, str]:
        body = {"grant_type": "refresh_token", "refresh_token": self.refresh_token}
        if not self.use_basic_auth:
            body["client_id"] = self.client_id
            body["client_secret"] = self.client_secret
        return body

    def refresh(self) -> str:
        auth = (self.client_id, self.client_secret) if self.use_basic_auth else None
        try:
            r = self.s.post(
                self.token_url,
                data=self._request_body(),
                auth=auth,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            payload: Dict[str, Any] = r.json()
        except requests.RequestException as e:
            self.log.error(f"Token refresh failed: {e}")
            raise

        token = payload.get("access_token")
        if not token:
            raise RuntimeError(f"Token endpoint {self.token_url} returned no access_token")

        rotated = payload.get("refresh_token")
        if rotated and rotated != self.refresh_token:
            self.log.info("Provider rotated the refresh token; using the new one for later refreshes")
            self.refresh_token = rotated

        expires_in = payload.get("expires_in")
        ttl = float(expires_in) if isinstance(expires_in, (int, float)) else 0.0
        self._access_token = str(token)
        self._expires_at = time.monotonic() + max(ttl - _EXPIRY_SLACK_SECONDS, 0.0)
        self.log.debug(f"Obtained access token (expires_in={expires_in})")
        return self._access_token

    def get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._expires_at:
            return self._access_token
        return self.refresh()
