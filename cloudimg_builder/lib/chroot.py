from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

HOST_IDENTITY_FILES = ("/etc/hostid", "/etc/resolv.conf")

# (mount args, target relative to the root); order matters: dev before dev/pts.
CHROOT_MOUNTS = (
    (["-t", "proc", "proc"], "proc"),
    (["-t", "sysfs", "sys"], "sys"),
    (["-B", "/dev"], "dev"),
    (["-t", "devpts", "pts"], "dev/pts"),
)


def chroot_cmd(target_root: Path, argv: Sequence[str], *, env: Mapping[str, str] | None = None) -> CmdResult:
    """Run a command with target_root as its process root."""

    return run_cmd(["chroot", str(target_root), *argv], env=env)


def copy_host_identity(target_root: Path) -> None:
    """Keep pool identity (hostid) and name resolution valid inside the chroot."""

    etc = Path(target_root) / "etc"
    for src in HOST_IDENTITY_FILES:
        run_cmd(["cp", src, str(etc)])


def mount_chroot_binds(target_root: Path) -> None:
    # Released by the recursive unmount of the whole tree.
    for args, rel in CHROOT_MOUNTS:
        dst = Path(target_root) / rel
        dst.mkdir(parents=True, exist_ok=True)
        run_cmd(["mount", *args, str(dst)])
