from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from ..errors import NotFound, ResourceExhausted, ToolError
from .command import run_cmd

logger = logging.getLogger(__name__)

_GONE_MARKERS = ("No such device or address", "No such file or directory")


@dataclass(frozen=True)
class LoopDevice:
    path: str

    def partition(self, index: int) -> str:
        # Loop devices always use the "p" separator (/dev/loop0p1).
        return f"{self.path}p{index}"


def attach(image_path: Path) -> LoopDevice:
    """Bind the next free loop device to image_path with partition scanning."""

    if not Path(image_path).exists():
        raise NotFound(f"{image_path} does not exist. Cannot create loop device.")

    try:
        r = run_cmd(["losetup", "--find", "--show", "-P", str(image_path)])
    except ToolError as e:
        raise ResourceExhausted(f"Unable to attach {image_path} to a loop device: {e.stderr.strip()}") from e

    dev = r.stdout.strip()
    if not dev:
        raise ResourceExhausted(f"losetup returned no device for {image_path}")

    logger.info("Attached %s to %s", image_path, dev)
    return LoopDevice(path=dev)


def detach(device: Optional[LoopDevice]) -> None:
    """Release a binding; missing or already-detached devices are skipped."""

    if device is None:
        return

    logger.info("Destroying loop device %s", device.path)
    r = run_cmd(["losetup", "-d", device.path], check=False)
    if r.returncode == 0:
        return
    if any(m in r.stderr for m in _GONE_MARKERS):
        logger.warning("Loop device %s already gone", device.path)
        return
    raise ToolError(r.argv, r.returncode, r.stderr)


@contextlib.contextmanager
def attached(image_path: Path) -> Iterator[LoopDevice]:
    device = attach(image_path)
    try:
        yield device
    finally:
        detach(device)
