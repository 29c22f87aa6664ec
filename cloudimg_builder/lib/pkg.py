from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ..build_config import BootstrapSpec
from .chroot import chroot_cmd
from .command import run_cmd

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def debootstrap_argv(spec: BootstrapSpec, target_root: Path) -> list[str]:
    argv = ["debootstrap"]
    if spec.cache_dir:
        argv.append(f"--cache-dir={spec.cache_dir}")
    if spec.include:
        argv.append("--include=" + ",".join(spec.include))
    argv += [spec.release, str(target_root)]
    if spec.repo_url:
        argv.append(spec.repo_url)
    return argv


def bootstrap_base_system(spec: BootstrapSpec, target_root: Path) -> None:
    logger.info("Bootstrapping %s into %s", spec.release, target_root)
    if spec.cache_dir:
        Path(spec.cache_dir).mkdir(parents=True, exist_ok=True)
    run_cmd(debootstrap_argv(spec, target_root))


def apt_update(target_root: Path) -> None:
    chroot_cmd(target_root, ["apt-get", "update"], env=APT_ENV)


def apt_upgrade(target_root: Path) -> None:
    chroot_cmd(target_root, ["apt-get", "-y", "upgrade"], env=APT_ENV)


def apt_install(target_root: Path, packages: Sequence[str]) -> None:
    if not packages:
        return
    argv = ["apt-get", "-y", "install", "--no-install-recommends", *packages]
    chroot_cmd(target_root, argv, env=APT_ENV)


def dpkg_reconfigure(target_root: Path, package: str) -> None:
    chroot_cmd(target_root, ["dpkg-reconfigure", "-f", "noninteractive", package], env=APT_ENV)
