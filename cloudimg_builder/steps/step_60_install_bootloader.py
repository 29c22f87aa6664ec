from __future__ import annotations

import logging

from ..lib.bootloader import ensure_bootloader_payload, install_bootloader
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class InstallBootloaderStep:
    step_id = "60_install_bootloader"

    def run(self, ctx: BuildCtx) -> None:
        spec = ctx.cfg.bootloader
        root = ctx.require_mount_root()

        payload = ensure_bootloader_payload(spec)
        efi_dir = root / "boot/efi" / spec.efi_subdir
        ctx.bootloader_path = install_bootloader(payload, efi_dir, spec.efi_filename)
