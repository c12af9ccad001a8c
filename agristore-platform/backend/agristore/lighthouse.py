# agristore/lighthouse.py
import json
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from .errors import AgriStoreError, NotFoundError, StorageUploadError, fail_open
from .schemas import FileInfo, StoredFile, UploadResult, UsageStats
from .settings import Settings
from .uploads import now_ms, staged_file

log = logging.getLogger("agristore.lighthouse")


def _upstream_message(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    if response is not None and response.text:
        return f"{exc} ({response.text.strip()[:300]})"
    return str(exc)


class LighthouseClient:
    """
    Client for the Lighthouse pinning node (Filecoin/IPFS).

    Uploads fail closed with StorageUploadError; the account statistics
    reads fail open and degrade to empty values.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.add_url = f"{settings.LIGHTHOUSE_BASE_URL.rstrip('/')}/api/v0/add"
        self.uploads_url = f"{settings.LIGHTHOUSE_API_URL.rstrip('/')}/api/user/files_uploaded"
        self.timeout = settings.STORAGE_TIMEOUT_SECONDS

    def _auth_headers(self) -> Dict[str, str]:
        if not self.settings.LIGHTHOUSE_API_KEY:
            raise StorageUploadError("Lighthouse API key is not configured")
        return {"Authorization": f"Bearer {self.settings.LIGHTHOUSE_API_KEY}"}

    def gateway_url(self, cid: str) -> str:
        return f"{self.settings.GATEWAY_URL.rstrip('/')}/ipfs/{cid}"

    # ---------- uploads (fail closed) ----------
    def upload_file(self, file_path: str, metadata: Optional[dict] = None, filename: Optional[str] = None) -> UploadResult:
        """
        Upload a local file and return where it landed. The caller owns
        `file_path` and must remove it.
        """
        headers = self._auth_headers()
        name = filename or os.path.basename(file_path)
        try:
            with open(file_path, "rb") as fp:
                res = requests.post(
                    self.add_url,
                    files={"file": (name, fp)},
                    headers=headers,
                    timeout=self.timeout,
                )
            res.raise_for_status()
            body = res.json()
        except Exception as e:
            log.error("Lighthouse upload error for %s: %s", name, e)
            raise StorageUploadError(f"Failed to upload to Lighthouse: {_upstream_message(e)}") from e

        cid = body.get("Hash") if isinstance(body, dict) else None
        if not cid:
            raise StorageUploadError("Failed to upload to Lighthouse: Invalid response from Lighthouse")

        return UploadResult(
            cid=cid,
            hash=cid,
            name=body.get("Name") or name,
            size=int(body.get("Size") or os.path.getsize(file_path)),
            url=self.gateway_url(cid),
            timestamp=now_ms(),
            metadata=metadata or {},
        )

    def upload_bytes(self, data: bytes, filename: str, metadata: Optional[dict] = None) -> UploadResult:
        with staged_file(self.settings.UPLOAD_DIR, filename, data) as path:
            return self.upload_file(path, metadata, filename=os.path.basename(filename or "") or None)

    def upload_json(self, document: Any, filename: str = "data.json") -> UploadResult:
        """Serialize `document` and upload it; the transient copy never outlives the call."""
        payload = json.dumps(document, indent=2, default=str)
        with staged_file(self.settings.UPLOAD_DIR, filename, payload) as path:
            return self.upload_file(path, {"type": "json", "filename": filename}, filename=filename)

    # ---------- lookups ----------
    def get_file_info(self, cid: str) -> FileInfo:
        headers = {}
        if self.settings.LIGHTHOUSE_API_KEY:
            headers["Authorization"] = f"Bearer {self.settings.LIGHTHOUSE_API_KEY}"
        try:
            res = requests.head(self.gateway_url(cid), headers=headers, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            log.error("File info error for %s: %s", cid, e)
            raise AgriStoreError(
                f"Failed to get file information: {e}",
                error="Failed to retrieve file information",
            ) from e

        if not res.ok:
            raise NotFoundError(
                f"File not found on Lighthouse: {cid} (status {res.status_code})",
                upstream_status=res.status_code,
                error="File not found",
            )

        length = res.headers.get("content-length")
        return FileInfo(
            cid=cid,
            size=int(length) if length and length.isdigit() else "unknown",
            mimeType=res.headers.get("content-type", "unknown"),
            lastModified=res.headers.get("last-modified", "unknown"),
        )

    # ---------- account statistics (fail open) ----------
    def _fetch_uploads(self) -> List[StoredFile]:
        res = requests.get(
            self.uploads_url,
            params={"lastKey": "null"},
            headers=self._auth_headers(),
            timeout=self.timeout,
        )
        res.raise_for_status()
        body = res.json()
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
        file_list = body.get("fileList") if isinstance(body, dict) else None
        if not isinstance(file_list, list):
            raise ValueError("Unexpected response format: fileList is not an array")

        return [
            StoredFile(
                cid=f.get("cid") or "unknown",
                fileName=f.get("fileName") or "unknown",
                size=int(f.get("fileSizeInBytes") or f.get("size") or 0),
                createdAt=f.get("createdAt") or "unknown",
                mimeType=f.get("mimeType") or "unknown",
            )
            for f in file_list
        ]

    @fail_open(list)
    def list_uploads(self) -> List[StoredFile]:
        return self._fetch_uploads()

    @fail_open(UsageStats)
    def get_usage_stats(self) -> UsageStats:
        files = self._fetch_uploads()
        return UsageStats(dataUsed=sum(f.size for f in files), totalUploads=len(files), files=files)

    @fail_open(lambda: False)
    def ping(self) -> bool:
        self._fetch_uploads()
        return True
