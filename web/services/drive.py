"""
Google Drive storage for generated reports, using httpx against the Drive v3 REST API.

Reports are stored as ``<root folder>/<student id>/<filename>`` and shared
publicly (read-only). Credentials come from the OAuth client file and the
refresh token written by ``scripts/generate_token.py``.
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from web.config import Settings

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
TOKEN_URL = "https://oauth2.googleapis.com/token"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------

class DriveAPIError(Exception):
    """General Drive API error."""
    pass


class UploadError(Exception):
    """The report could not be stored or shared."""
    pass


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

def load_client_config(credentials_path: Path) -> Dict[str, Any]:
    """
    Read ``client_id``, ``client_secret`` and ``redirect_uri`` from a Google
    OAuth client file (either the ``web`` or the ``installed`` flavour).
    """
    with open(credentials_path, "r", encoding="utf-8") as f:
        credentials = json.load(f)

    client = credentials.get("web") or credentials.get("installed")
    if not client:
        raise DriveAPIError(f"{credentials_path} has no 'web' or 'installed' section")

    redirect_uris = client.get("redirect_uris") or []
    return {
        "client_id": client["client_id"],
        "client_secret": client["client_secret"],
        "redirect_uri": redirect_uris[0] if redirect_uris else "http://localhost",
    }


def public_download_url(file_id: str) -> str:
    return f"https://drive.google.com/uc?id={file_id}&export=download"


def _check(resp: httpx.Response, action: str) -> Dict[str, Any]:
    if resp.status_code >= 400:
        raise DriveAPIError(f"{action} failed ({resp.status_code}): {resp.text}")
    return resp.json() if resp.content else {}


# ---------------------------------------------------------------------------
# Storage client
# ---------------------------------------------------------------------------

class DriveStorage:
    """Uploads report PDFs into per-student Drive folders."""

    def __init__(
        self,
        credentials_path: Path,
        token_path: Path,
        root_folder: str = "careerReports",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials_path = Path(credentials_path)
        self.token_path = Path(token_path)
        self.root_folder = root_folder
        self.timeout = timeout
        self._transport = transport

        self._client_config: Optional[Dict[str, Any]] = None
        self._access_token: Optional[str] = None
        self._expires_at = 0.0
        self._root_folder_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DriveStorage":
        return cls(
            credentials_path=settings.DRIVE_CREDENTIALS_PATH,
            token_path=settings.DRIVE_TOKEN_PATH,
            root_folder=settings.DRIVE_ROOT_FOLDER,
            timeout=settings.DRIVE_TIMEOUT_SECONDS,
        )

    def _reset(self) -> None:
        self._client_config = None
        self._access_token = None
        self._expires_at = 0.0
        self._root_folder_id = None

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        # Refreshed 60 seconds before expiry.
        if self._access_token and time.time() < self._expires_at - 60:
            return self._access_token

        if self._client_config is None:
            self._client_config = load_client_config(self.credentials_path)
        with open(self.token_path, "r", encoding="utf-8") as f:
            token_data = json.load(f)
        if not token_data.get("refresh_token"):
            raise DriveAPIError(f"{self.token_path} has no refresh_token; run scripts/generate_token.py")

        resp = await client.post(TOKEN_URL, data={
            "client_id": self._client_config["client_id"],
            "client_secret": self._client_config["client_secret"],
            "refresh_token": token_data["refresh_token"],
            "grant_type": "refresh_token",
        })
        new_token = _check(resp, "Token refresh")
        self._access_token = new_token["access_token"]
        self._expires_at = time.time() + new_token.get("expires_in", 3600)
        return self._access_token

    async def _get_or_create_folder(
        self,
        client: httpx.AsyncClient,
        headers: Dict[str, str],
        name: str,
        parent_id: Optional[str] = None,
    ) -> str:
        query = f"name='{name}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        if parent_id:
            query += f" and '{parent_id}' in parents"

        resp = await client.get(
            f"{DRIVE_API_BASE}/files",
            headers=headers,
            params={"q": query, "fields": "files(id)"},
        )
        files = _check(resp, f"Folder lookup for '{name}'").get("files", [])
        if files:
            return files[0]["id"]

        metadata: Dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]
        resp = await client.post(
            f"{DRIVE_API_BASE}/files",
            headers=headers,
            params={"fields": "id"},
            json=metadata,
        )
        return _check(resp, f"Folder creation for '{name}'")["id"]

    async def _student_folder_id(
        self,
        client: httpx.AsyncClient,
        headers: Dict[str, str],
        student_id: str,
    ) -> str:
        if self._root_folder_id is None:
            self._root_folder_id = await self._get_or_create_folder(client, headers, self.root_folder)
            logger.info("Base folder '%s' found/created: %s", self.root_folder, self._root_folder_id)

        folder_id = await self._get_or_create_folder(client, headers, str(student_id), self._root_folder_id)
        logger.info("Student folder '%s' found/created: %s", student_id, folder_id)
        return folder_id

    async def upload(self, pdf_bytes: bytes, filename: str, student_id: Optional[str]) -> str:
        """
        Store ``pdf_bytes`` as ``filename`` in the student's folder and share it.

        Returns:
            A public download URL for the file.

        Raises:
            UploadError: Any step failed. Cached credentials and folder ids are
                dropped so the next call starts over.
        """
        if not student_id:
            raise UploadError("studentID is required to upload to drive.")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                headers = {"Authorization": f"Bearer {await self._get_access_token(client)}"}
                folder_id = await self._student_folder_id(client, headers, student_id)

                logger.info("Uploading PDF %s for student %s", filename, student_id)
                file_id = await self._upload_file(client, headers, pdf_bytes, filename, folder_id)

                resp = await client.post(
                    f"{DRIVE_API_BASE}/files/{file_id}/permissions",
                    headers=headers,
                    json={"role": "reader", "type": "anyone"},
                )
                _check(resp, "Sharing")
        except (DriveAPIError, httpx.HTTPError, OSError, ValueError, KeyError) as exc:
            logger.error("Drive upload error: %s", exc)
            self._reset()
            raise UploadError("Failed to upload PDF to Google Drive") from exc

        url = public_download_url(file_id)
        logger.info("Upload complete: %s", url)
        return url

    async def _upload_file(
        self,
        client: httpx.AsyncClient,
        headers: Dict[str, str],
        pdf_bytes: bytes,
        filename: str,
        folder_id: str,
    ) -> str:
        boundary = uuid.uuid4().hex
        metadata = json.dumps({"name": filename, "parents": [folder_id]})
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            metadata.encode("utf-8"),
            f"\r\n--{boundary}\r\n".encode(),
            b"Content-Type: application/pdf\r\n\r\n",
            pdf_bytes,
            f"\r\n--{boundary}--\r\n".encode(),
        ])
        resp = await client.post(
            f"{DRIVE_UPLOAD_BASE}/files",
            headers={**headers, "Content-Type": f"multipart/related; boundary={boundary}"},
            params={"uploadType": "multipart", "fields": "id"},
            content=body,
        )
        return _check(resp, "Upload")["id"]
