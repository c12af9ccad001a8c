# agristore/uploads.py
import logging
import os
import re
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional, Union

from .errors import ValidationError

log = logging.getLogger("agristore.uploads")

ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "pdf", "doc", "docx", "txt", "json", "csv"}
ALLOWED_MIME = re.compile(r"jpeg|jpg|png|gif|pdf|msword|wordprocessingml|text/plain|json|csv")
MAX_SUFFIX_LEN = 16


@dataclass
class IncomingFile:
    filename: str
    content: bytes
    content_type: Optional[str] = None
    # set when the body was not read because it is already known to be too big
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        return self.declared_size if self.declared_size is not None else len(self.content)


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def staged_file(directory: str, filename: str, data: Union[bytes, str]) -> Iterator[str]:
    """
    Write `data` to a transient file under `directory` and yield its path.
    The file is removed exactly once when the block exits, however it exits.
    """
    # only the extension survives; client names can exceed the filesystem limit
    ext = os.path.splitext(os.path.basename(filename or ""))[1][:MAX_SUFFIX_LEN]
    fd, path = tempfile.mkstemp(prefix=f"temp_{now_ms()}_", suffix=ext, dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data.encode("utf-8") if isinstance(data, str) else data)
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError:
            log.warning("Could not remove temp file %s", path, exc_info=True)


def check_file(file: IncomingFile, max_bytes: int) -> None:
    """Reject files the storage gateway should never see."""
    if file.size > max_bytes:
        raise ValidationError(
            ["file"],
            f"Maximum file size is {max_bytes // (1024 * 1024)}MB",
            error="File too large",
        )
    ext = os.path.splitext(file.filename or "")[1].lstrip(".").lower()
    mime_ok = not file.content_type or bool(ALLOWED_MIME.search(file.content_type.lower()))
    if ext not in ALLOWED_EXTENSIONS or not mime_ok:
        raise ValidationError(
            ["file"],
            "Only jpeg, jpg, png, gif, pdf, doc, docx, txt, json and csv files are allowed",
            error="Unsupported file type",
        )


async def read_incoming(upload, max_bytes: int) -> IncomingFile:
    """
    Read a multipart upload into an IncomingFile, never holding more than
    `max_bytes + 1` bytes of it. An oversized file still comes back, sized
    so that `check_file` rejects it.
    """
    name = upload.filename or "upload"
    declared = getattr(upload, "size", None)
    if declared is not None and declared > max_bytes:
        return IncomingFile(name, b"", upload.content_type, declared_size=declared)
    return IncomingFile(name, await upload.read(max_bytes + 1), upload.content_type)


def migrate_files(
    client,
    files: List[IncomingFile],
    batch_id: str,
    migration_type: str = "bulk_migration",
    max_bytes: Optional[int] = None,
    clock: Callable[[], str] = iso_now,
) -> List[dict]:
    """
    Upload every file in turn. A failing file is recorded and the batch
    carries on; nothing is retried.
    """
    results = []
    for file in files:
        metadata = {
            "batchId": batch_id,
            "originalName": file.filename,
            "mimeType": file.content_type,
            "uploadedAt": clock(),
            "migrationType": migration_type,
        }
        try:
            if max_bytes is not None:
                check_file(file, max_bytes)
            result = client.upload_bytes(file.content, file.filename, metadata)
        except Exception as e:
            log.warning("Migration of %s in %s failed: %s", file.filename, batch_id, e)
            results.append({"filename": file.filename, "status": "failed", "error": str(e)})
            continue

        results.append({
            "filename": file.filename,
            "cid": result.cid,
            "hash": result.hash,
            "size": result.size,
            "url": result.url,
            "status": "success",
        })
    return results
