from __future__ import annotations

import logging

from ..lib.loop import attached
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class AttachLoopStep:
    step_id = "30_attach_loop"

    def run(self, ctx: BuildCtx) -> None:
        # Detached when the pipeline unwinds, success or not.
        ctx.loop_device = ctx.stack.enter_context(attached(ctx.cfg.image.path))
        logger.info("boot=%s pool=%s", ctx.boot_device, ctx.pool_device)
