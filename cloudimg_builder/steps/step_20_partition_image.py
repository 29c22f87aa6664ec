from __future__ import annotations

import logging

from ..lib.image import partition_image
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class PartitionImageStep:
    step_id = "20_partition_image"

    def run(self, ctx: BuildCtx) -> None:
        partition_image(ctx.cfg.image, ctx.cfg.layout)
        logger.info("Partitioned %s for UEFI boot + pool", ctx.cfg.image.path)
