from __future__ import annotations

import logging

from ..lib.chroot import copy_host_identity, mount_chroot_binds
from ..lib.pkg import bootstrap_base_system
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class BootstrapOSStep:
    step_id = "70_bootstrap_os"

    def run(self, ctx: BuildCtx) -> None:
        root = ctx.require_mount_root()

        logger.info("Bootstrapping OS...")
        bootstrap_base_system(ctx.cfg.bootstrap, root)
        copy_host_identity(root)
        mount_chroot_binds(root)
