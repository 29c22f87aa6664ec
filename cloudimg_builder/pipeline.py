from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .build_config import BuildConfig
from .lib.loop import LoopDevice
from .build_state import mark_step_completed

logger = logging.getLogger(__name__)


@dataclass
class BuildCtx:
    """Mutable per-run context threaded through the steps.

    Steps that acquire a resource register its release on ``stack`` so the
    pipeline unwinds in reverse order however it exits.
    """

    cfg: BuildConfig
    stack: contextlib.ExitStack
    image_path: Optional[Path] = None
    loop_device: Optional[LoopDevice] = None
    mount_root: Optional[Path] = None
    bootloader_path: Optional[Path] = None

    def require_loop(self) -> LoopDevice:
        if self.loop_device is None:
            raise RuntimeError("No loop device attached; run the attach step first")
        return self.loop_device

    def require_mount_root(self) -> Path:
        if self.mount_root is None:
            raise RuntimeError("Target filesystems not mounted; run the mount step first")
        return self.mount_root

    @property
    def boot_device(self) -> str:
        return self.require_loop().partition(self.cfg.layout.boot_index)

    @property
    def pool_device(self) -> str:
        return self.require_loop().partition(self.cfg.layout.pool_index)


class Step(Protocol):
    """A single pipeline step."""

    step_id: str

    def run(self, ctx: BuildCtx) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    image_path: Optional[Path]
    loop_device: Optional[str]


def run_pipeline(
    *,
    cfg: BuildConfig,
    steps: Sequence[Step],
    state: Dict[str, Any],
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order; acquired resources are released on every exit path."""

    ran: List[str] = []
    exe = state.setdefault("execution", {})

    with contextlib.ExitStack() as stack:
        ctx = BuildCtx(cfg=cfg, stack=stack)
        try:
            for step in steps:
                exe["current_step"] = step.step_id
                logger.info("Running step %s", step.step_id)
                step.run(ctx)
                mark_step_completed(state, step.step_id)
                ran.append(step.step_id)

                if stop_after is not None and step.step_id == stop_after:
                    logger.info("Stopping after %s", stop_after)
                    break
        finally:
            exe["image_path"] = str(ctx.image_path) if ctx.image_path else None
            exe["loop_device"] = ctx.loop_device.path if ctx.loop_device else None
            logger.info("Releasing resources")

    exe["current_step"] = None
    return PipelineResult(
        ran_steps=ran,
        image_path=ctx.image_path,
        loop_device=ctx.loop_device.path if ctx.loop_device else None,
    )
