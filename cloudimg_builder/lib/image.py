from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..build_config import ImageSpec, PartitionLayout
from ..errors import AlreadyExists, FileOperationError, NotFound
from .command import run_cmd

logger = logging.getLogger(__name__)


def create_image(spec: ImageSpec) -> Path:
    """Allocate a sparse image file of spec.size_bytes.

    Nothing is written; the file is only extended to its final size.
    """

    path = spec.path
    if path.exists():
        raise AlreadyExists(f"{path} does already exist.")

    logger.info("Creating image file %s (%d bytes)", path, spec.size_bytes)
    try:
        # "x" fails if something raced us into creating the file.
        with open(path, "xb") as f:
            f.truncate(spec.size_bytes)
    except FileExistsError as e:
        raise AlreadyExists(f"{path} does already exist.") from e
    except OSError as e:
        raise FileOperationError(f"Unable to allocate {path}: {e}") from e
    return path


def sgdisk_argvs(path: Path, layout: PartitionLayout) -> List[List[str]]:
    boot = layout.boot_index
    pool = layout.pool_index
    return [
        [
            "sgdisk",
            "-n",
            f"{boot}:{layout.boot_offset_mib}M:+{layout.boot_size_mib}M",
            "-t",
            f"{boot}:{layout.boot_typecode}",
            str(path),
        ],
        [
            "sgdisk",
            "-n",
            f"{pool}:0:-{layout.tail_margin_mib}M",
            "-t",
            f"{pool}:{layout.pool_typecode}",
            str(path),
        ],
    ]


def partition_image(spec: ImageSpec, layout: PartitionLayout) -> None:
    """Write the GPT layout: ESP first, pool partition over the remainder."""

    path = spec.path
    if not path.exists():
        raise NotFound(f"{path} does not exist. Cannot create partitions.")

    # Fails early (ConfigError) if the image can't hold the layout.
    pool_bytes = layout.pool_size_bytes(spec.size_bytes)
    logger.info(
        "Partitioning %s: boot=%d bytes, pool=%d bytes",
        path,
        layout.boot_size_bytes,
        pool_bytes,
    )
    for argv in sgdisk_argvs(path, layout):
        run_cmd(argv)
