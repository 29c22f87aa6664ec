from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import requests

from ..build_config import BootloaderSpec
from ..errors import FetchError, FileOperationError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 60
CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def _verify(path: Path, expected: Optional[str]) -> None:
    if not expected:
        return
    actual = sha256_file(path)
    if actual != expected:
        raise FetchError(f"Checksum mismatch for {path}: expected {expected}, got {actual}")


def fetch(url: str, dest: Path) -> None:
    """Download url to dest; dest only appears once the body is complete."""

    tmp: Optional[str] = None
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{dest.name}.", dir=str(dest.parent))
        with os.fdopen(fd, "wb") as out:
            with requests.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT, allow_redirects=True) as r:
                r.raise_for_status()
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        out.write(chunk)
        os.replace(tmp, dest)
    except requests.RequestException as e:
        raise FetchError(f"Unable to download {url}: {e}") from e
    except OSError as e:
        raise FetchError(f"Unable to store {url} at {dest}: {e}") from e
    finally:
        if tmp is not None and os.path.exists(tmp):
            os.unlink(tmp)


def ensure_bootloader_payload(spec: BootloaderSpec) -> Path:
    """Reuse the cached payload if present, otherwise fetch it once."""

    cached = spec.cache_path
    if cached.exists():
        logger.info("Found %s. Skipping download.", cached)
    else:
        logger.info("Downloading %s to %s", spec.url, cached)
        fetch(spec.url, cached)

    _verify(cached, spec.sha256)
    return cached


def install_bootloader(payload: Path, target_dir: Path, filename: Optional[str] = None) -> Path:
    """Create the EFI directory tree and copy the payload into it."""

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        installed = Path(shutil.copy2(payload, target_dir / (filename or payload.name)))
    except OSError as e:
        raise FileOperationError(f"Unable to install {payload} into {target_dir}: {e}") from e

    logger.info("Installed bootloader payload %s", installed)
    return installed
