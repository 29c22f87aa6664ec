from __future__ import annotations

import logging

from ..lib.image import create_image
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)


class CreateImageStep:
    step_id = "10_create_image"

    def run(self, ctx: BuildCtx) -> None:
        ctx.image_path = create_image(ctx.cfg.image)
