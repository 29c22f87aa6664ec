from __future__ import annotations

import logging

from ..lib.mounts import mount_all, unmounted_on_exit
from ..lib.zfs import export_pool_if_present
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class MountFilesystemsStep:
    step_id = "50_mount_filesystems"

    def run(self, ctx: BuildCtx) -> None:
        pool = ctx.cfg.pool
        root = ctx.cfg.mountpoint_root

        # Re-import under an explicit altroot: export whatever is imported now.
        export_pool_if_present(pool.name, settle=ctx.cfg.settle)

        ctx.stack.enter_context(unmounted_on_exit(root, settle=ctx.cfg.settle))
        mount_all(pool, root, ctx.boot_device)
        ctx.mount_root = root

        logger.info("Mounted %s and %s under %s", pool.os_dataset, pool.home_dataset, root)
