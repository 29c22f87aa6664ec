from __future__ import annotations

import logging

from ..errors import NotFound
from ..lib.mounts import mounted_under
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class VerifyImageStep:
    step_id = "90_verify_image"

    def run(self, ctx: BuildCtx) -> None:
        root = ctx.require_mount_root()

        payload = ctx.bootloader_path
        if payload is None or not payload.exists():
            raise NotFound(f"Bootloader payload missing under {root / 'boot/efi'}")
        if not (root / "etc").is_dir():
            raise NotFound(f"Target tree incomplete: {root / 'etc'} missing")

        logger.info("EFI payload: %s (%d bytes)", payload, payload.stat().st_size)
        for mp in mounted_under(root):
            logger.info("Mounted: %s", mp)
