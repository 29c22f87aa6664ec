from __future__ import annotations

import logging

from ..lib.block import format_boot_partition
from ..lib.zfs import create_datasets, create_pool, exported_on_exit, set_bootfs
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class ProvisionPoolStep:
    step_id = "40_provision_pool"

    def run(self, ctx: BuildCtx) -> None:
        pool = ctx.cfg.pool

        create_pool(pool, ctx.pool_device)
        # Only a pool we created gets exported on the way out.
        ctx.stack.enter_context(exported_on_exit(pool.name, settle=ctx.cfg.settle))

        create_datasets(pool)
        set_bootfs(pool)
        format_boot_partition(ctx.boot_device)

        logger.info("Pool %s ready (bootfs=%s)", pool.name, pool.os_dataset)
