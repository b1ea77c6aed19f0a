from typing import Any, Dict, Iterable, List, Optional

import requests

from ..auth import GOOGLE_TOKEN_URL, RefreshTokenAuth
from ..domain.models import FOLDER_MIME_TYPE, DriveFile
from ..logging import get_logger

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
_FILE_FIELDS = "id,name,mimeType,parents"


def _quote(value: str) -> str:
    """Escape a literal for use inside a Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """Thin client for the Google Drive v3 files API.

    Only implements what a run needs: listing children, folder lookup/creation,
    media download and re-parenting a file.
    """

    def __init__(
        self,
        auth: RefreshTokenAuth,
        *,
        base_url: str = DRIVE_API_BASE,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.auth = auth
        self.base = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.log = get_logger("drive-client")
        self.s = session or requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    @classmethod
    def from_credentials(
        cls,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        timeout: int = 30,
    ) -> "DriveClient":
        auth = RefreshTokenAuth(
            GOOGLE_TOKEN_URL,
            client_id,
            client_secret,
            refresh_token,
            timeout=timeout,
            name="drive",
        )
        return cls(auth, timeout=timeout)

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        return f"{self.base}{path}"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.auth.get_access_token()}"}

    def _json(self, r: requests.Response) -> Any:
        r.raise_for_status()
        return r.json()

    def _list(self, query: str) -> List[DriveFile]:
        files: List[DriveFile] = []
        page_token: Optional[str] = None
        while True:
            params = {
                "q": query,
                "fields": f"nextPageToken,files({_FILE_FIELDS})",
                "pageSize": 1000,
            }
            if page_token:
                params["pageToken"] = page_token
            r = self.s.get(self._url("/files"), params=params, headers=self._headers(), timeout=self.timeout)
            data = self._json(r) or {}
            files.extend(DriveFile.from_api(f) for f in data.get("files") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return files

    # ---------- listing ----------
    def list_children(self, folder_id: str, *, mime_type: Optional[str] = None) -> List[DriveFile]:
        query = f"'{_quote(folder_id)}' in parents and trashed=false"
        if mime_type:
            query += f" and mimeType='{_quote(mime_type)}'"
        try:
            files = self._list(query)
        except requests.RequestException as e:
            self.log.error(f"List children of {folder_id} failed: {e}")
            raise
        self.log.debug(f"Listed {len(files)} item(s) under folder {folder_id}")
        return files

    # ---------- folders ----------
    def find_folder(self, parent_id: str, name: str) -> Optional[str]:
        query = (
            f"'{_quote(parent_id)}' in parents and mimeType='{FOLDER_MIME_TYPE}' "
            f"and name='{_quote(name)}' and trashed=false"
        )
        try:
            found = self._list(query)
        except requests.RequestException as e:
            self.log.error(f"Folder lookup '{name}' under {parent_id} failed: {e}")
            raise
        return found[0].id if found else None

    def create_folder(self, parent_id: str, name: str) -> str:
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        try:
            r = self.s.post(
                self._url("/files"),
                params={"fields": "id"},
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
            created = self._json(r)
        except requests.RequestException as e:
            self.log.error(f"Create folder '{name}' under {parent_id} failed: {e}")
            raise
        folder_id = str(created["id"])
        self.log.info(f"Created folder '{name}' -> id={folder_id}")
        return folder_id

    def get_or_create_folder(self, parent_id: str, name: str) -> str:
        existing = self.find_folder(parent_id, name)
        if existing:
            self.log.debug(f"Using existing folder '{name}' -> id={existing}")
            return existing
        return self.create_folder(parent_id, name)

    # ---------- files ----------
    def download_content(self, file_id: str) -> bytes:
        try:
            r = self.s.get(
                self._url(f"/files/{file_id}"),
                params={"alt": "media"},
                headers=self._headers(),
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            self.log.error(f"Download of file {file_id} failed: {e}")
            raise
        return r.content

    def move_file(self, file_id: str, from_parents: Iterable[str], to_parent: str) -> Dict[str, Any]:
        params = {
            "addParents": to_parent,
            "removeParents": ",".join(p for p in from_parents if p),
            "fields": "id,parents",
        }
        try:
            r = self.s.patch(
                self._url(f"/files/{file_id}"),
                params=params,
                json={},
                headers=self._headers(),
                timeout=self.timeout,
            )
            return self._json(r)
        except requests.RequestException as e:
            self.log.error(f"Move of file {file_id} to {to_parent} failed: {e}")
            raise
