from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, List

from ..build_config import PoolSpec, SettleSpec
from .command import run_cmd
from .settle import wait_until
from .zfs import import_pool

logger = logging.getLogger(__name__)

MOUNT_TABLE = "/proc/self/mounts"


def _unescape(field: str) -> str:
    # The mount table octal-escapes space, tab, newline and backslash.
    return (
        field.replace("\\040", " ")
        .replace("\\011", "\t")
        .replace("\\012", "\n")
        .replace("\\134", "\\")
    )


def mounted_under(root: Path, *, table: str = MOUNT_TABLE) -> List[str]:
    """Return mountpoints at or below root, in mount-table order.

    The table lists canonical paths, so root is resolved first.
    """

    try:
        lines = Path(table).read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return []

    prefix = str(Path(root).resolve()).rstrip("/")
    out: List[str] = []
    for line in lines:
        fields = line.split()
        if len(fields) < 2:
            continue
        mp = _unescape(fields[1])
        if mp == prefix or mp.startswith(prefix + "/"):
            out.append(mp)
    return out


def mount_all(spec: PoolSpec, mountpoint_root: Path, boot_device: str) -> None:
    """Import + mount datasets under mountpoint_root, then the ESP at boot/efi."""

    mountpoint_root.mkdir(parents=True, exist_ok=True)
    import_pool(spec, mountpoint_root)

    efi_dir = mountpoint_root / "boot/efi"
    efi_dir.mkdir(parents=True, exist_ok=True)
    run_cmd(["mount", boot_device, str(efi_dir)])


def unmount_all(mountpoint_root: Path, *, settle: SettleSpec = SettleSpec()) -> None:
    """Recursively unmount everything under mountpoint_root in one call.

    -n keeps the change local to this namespace (no mtab update) and -R
    takes care of bind-mount ordering.
    """

    mountpoint_root = Path(mountpoint_root).resolve()
    if not mounted_under(mountpoint_root):
        logger.info("Nothing mounted under %s", mountpoint_root)
        return

    run_cmd(["umount", "-n", "-R", str(mountpoint_root)])
    wait_until(
        lambda: not mounted_under(mountpoint_root),
        what=f"mounts under {mountpoint_root} to disappear",
        timeout=settle.timeout,
        interval=settle.interval,
    )


@contextlib.contextmanager
def unmounted_on_exit(mountpoint_root: Path, *, settle: SettleSpec = SettleSpec()) -> Iterator[None]:
    try:
        yield
    finally:
        unmount_all(mountpoint_root, settle=settle)
