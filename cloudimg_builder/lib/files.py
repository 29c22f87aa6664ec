from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator

from ..build_config import ProxySpec
from ..errors import FileOperationError
from .sysconfig import render_apt_proxy

logger = logging.getLogger(__name__)

APT_PROXY_CONF = "etc/apt/apt.conf.d/01proxy"


def _target_path(root: Path, rel: str) -> Path:
    return Path(root) / rel.lstrip("/")


def write_file(root: Path, rel: str, contents: str) -> Path:
    p = _target_path(root, rel)
    logger.info("Writing %s", p)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(contents, encoding="utf-8")
    except OSError as e:
        raise FileOperationError(f"Unable to write {p}: {e}") from e
    return p


def append_file(root: Path, rel: str, contents: str) -> Path:
    p = _target_path(root, rel)
    logger.info("Appending to %s", p)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "a", encoding="utf-8") as f:
            f.write(contents)
    except OSError as e:
        raise FileOperationError(f"Unable to append to {p}: {e}") from e
    return p


def remove_file(root: Path, rel: str) -> None:
    p = _target_path(root, rel)
    logger.info("Removing %s", p)
    try:
        p.unlink()
    except FileNotFoundError:
        logger.warning("%s already removed", p)
    except OSError as e:
        raise FileOperationError(f"Unable to remove {p}: {e}") from e


@contextlib.contextmanager
def apt_proxy(root: Path, spec: ProxySpec) -> Iterator[None]:
    """Temporarily point the target's apt at a caching proxy.

    The snippet is removed on exit so it never ends up in the image.
    """

    if not spec.enabled:
        yield
        return

    logger.info("Temporarily enabling proxy for target apt.")
    write_file(root, APT_PROXY_CONF, render_apt_proxy(spec))
    try:
        yield
    finally:
        remove_file(root, APT_PROXY_CONF)
