from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, List, Mapping

from ..build_config import PoolSpec, SettleSpec
from ..errors import AlreadyExists, NotFound, ToolError
from .command import run_cmd
from .settle import wait_until

logger = logging.getLogger(__name__)


def pool_create_argv(spec: PoolSpec, device: str) -> List[str]:
    return [
        "zpool",
        "create",
        "-f",
        "-o",
        f"ashift={spec.ashift}",
        "-O",
        f"compression={spec.compression}",
        "-O",
        f"acltype={spec.acltype}",
        "-O",
        f"xattr={spec.xattr}",
        "-O",
        f"relatime={spec.relatime}",
        "-o",
        f"autotrim={spec.autotrim}",
        "-o",
        f"compatibility={spec.compatibility}",
        "-m",
        "none",
        spec.name,
        device,
    ]


def create_pool(spec: PoolSpec, device: str) -> None:
    """Create the pool with its root mountpoint suppressed (nothing auto-mounts)."""

    try:
        run_cmd(pool_create_argv(spec, device))
    except ToolError as e:
        if "already exists" in e.stderr or "in use" in e.stderr:
            raise AlreadyExists(f"Pool {spec.name} or device {device} already in use: {e.stderr.strip()}") from e
        raise


def create_dataset(dataset: str, properties: Mapping[str, str]) -> None:
    argv = ["zfs", "create"]
    for key, value in properties.items():
        argv += ["-o", f"{key}={value}"]
    argv.append(dataset)
    run_cmd(argv)


def create_datasets(spec: PoolSpec) -> None:
    # Parents first: the ROOT container must exist before the OS dataset.
    for dataset, props in (
        (spec.root_container, {"mountpoint": "none"}),
        (spec.os_dataset, {"mountpoint": "/", "canmount": "noauto"}),
        (spec.home_dataset, {"mountpoint": "/home"}),
    ):
        create_dataset(dataset, props)


def set_bootfs(spec: PoolSpec) -> None:
    try:
        run_cmd(["zpool", "set", f"bootfs={spec.os_dataset}", spec.name])
    except ToolError as e:
        if "does not exist" in e.stderr or "no such" in e.stderr:
            raise NotFound(f"Unable to mark {spec.os_dataset} as bootfs: {e.stderr.strip()}") from e
        raise


def list_pools() -> List[str]:
    r = run_cmd(["zpool", "list", "-H", "-o", "name"])
    return [ln.strip() for ln in r.stdout.splitlines() if ln.strip()]


def export_pool_if_present(name: str, *, settle: SettleSpec = SettleSpec()) -> bool:
    """Export name if it is imported; returns True if an export happened.

    Also guards against stale imports left by an interrupted run.
    """

    if name not in list_pools():
        logger.info("Pool %s not imported; nothing to export", name)
        return False

    run_cmd(["zpool", "export", name])
    wait_until(
        lambda: name not in list_pools(),
        what=f"pool {name} to leave the pool list",
        timeout=settle.timeout,
        interval=settle.interval,
    )
    logger.info("Exported pool %s", name)
    return True


def mount_dataset(dataset: str) -> None:
    run_cmd(["zfs", "mount", dataset])


def import_pool(spec: PoolSpec, mountpoint_root: Path) -> None:
    """Import without auto-mounting, then mount the OS root and home datasets.

    A missing pool or a failed mount surfaces as the tool's ToolError.
    """

    logger.info("Importing zpool %s to %s", spec.name, mountpoint_root)
    run_cmd(["zpool", "import", "-N", "-R", str(mountpoint_root), spec.name])

    for dataset in (spec.os_dataset, spec.home_dataset):
        mount_dataset(dataset)


@contextlib.contextmanager
def exported_on_exit(name: str, *, settle: SettleSpec = SettleSpec()) -> Iterator[None]:
    """Scope in which the pool may be imported; it is exported on every exit path."""

    try:
        yield
    finally:
        export_pool_if_present(name, settle=settle)
