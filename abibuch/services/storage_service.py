"""Upload storage on the local filesystem.

Files live below settings.upload_dir and are addressed by URLs of the form
/api/uploads/<relative path>. Names are generated server side
(<prefix>-<unix ms>-<random hex><ext>) so user filenames never reach the disk.
"""

import logging
import secrets
import time
from pathlib import Path

from ..config import settings

log = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/api/uploads/"


def upload_root() -> Path:
    return Path(settings.upload_dir).resolve()


def save_upload(content: bytes, subdir: str, prefix: str, ext: str) -> str:
    """Write content to upload_dir/subdir and return its public URL."""
    target_dir = upload_root() / subdir
    target_dir.mkdir(parents=True, exist_ok=True)
    name = f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"
    (target_dir / name).write_bytes(content)
    rel = f"{subdir}/{name}".strip("/")
    log.debug(f"Stored upload {rel} ({len(content)} bytes)")
    return UPLOAD_URL_PREFIX + rel


def resolve_upload_path(relative: str) -> Path | None:
    """Map a relative upload path to a file, refusing traversal."""
    root = upload_root()
    candidate = (root / relative).resolve()
    if root != candidate and root not in candidate.parents:
        return None
    return candidate if candidate.is_file() else None


def path_for_url(url: str | None) -> Path | None:
    if not url or not url.startswith(UPLOAD_URL_PREFIX):
        return None
    return resolve_upload_path(url[len(UPLOAD_URL_PREFIX):])


def delete_upload(url: str | None) -> None:
    """Remove a stored file. Missing files are ignored, IO errors logged."""
    path = path_for_url(url)
    if path is None:
        return
    try:
        path.unlink()
    except OSError:
        log.warning(f"Could not delete upload {url}", exc_info=True)


def file_extension(url: str) -> str:
    suffix = Path(url).suffix.lower()
    return suffix or ".jpg"
