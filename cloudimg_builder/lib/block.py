from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def format_boot_partition(device: str) -> None:
    """Write a FAT32 filesystem for the EFI System Partition."""

    run_cmd(["mkfs.vfat", "-F32", device])
    logger.info("Formatted %s as FAT32", device)
