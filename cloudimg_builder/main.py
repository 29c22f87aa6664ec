from __future__ import annotations

import argparse
import logging
import os
import signal
from typing import Any, Dict, Optional

from .build_config import BuildConfig, load_build_config, with_overrides
from .build_state import new_build_state, record_error, save_build_state
from .errors import BuildError, Interrupted, PrivilegeError
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import PipelineResult, run_pipeline
from .steps import (
    AttachLoopStep,
    BootstrapOSStep,
    ConfigureSystemStep,
    CreateImageStep,
    InstallBootloaderStep,
    MountFilesystemsStep,
    PartitionImageStep,
    ProvisionPoolStep,
    VerifyImageStep,
)

logger = logging.getLogger(__name__)


def build_steps():
    return [
        CreateImageStep(),
        PartitionImageStep(),
        AttachLoopStep(),
        ProvisionPoolStep(),
        MountFilesystemsStep(),
        InstallBootloaderStep(),
        BootstrapOSStep(),
        ConfigureSystemStep(),
        VerifyImageStep(),
    ]


def require_root() -> None:
    if os.geteuid() != 0:
        raise PrivilegeError("cloudimg-builder must be run as root.")


def _on_sigterm(signum, frame) -> None:
    # Turn SIGTERM into an exception so the cleanup tail unwinds.
    raise Interrupted(f"Received signal {signum}")


def run(
    *,
    cfg: BuildConfig,
    state_path: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Build one image; the state record (if requested) is saved either way."""

    state: Dict[str, Any] = new_build_state()
    state["image"] = str(cfg.image.path)
    state["pool"] = cfg.pool.name

    try:
        return run_pipeline(cfg=cfg, steps=build_steps(), state=state, stop_after=stop_after)
    except BaseException as e:
        record_error(state, e)
        raise
    finally:
        if state_path:
            save_build_state(state_path, state)


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "image.dir": args.image_dir,
        "image.name": args.image_name,
        "image.size_bytes": args.size,
        "mountpoint": args.mountpoint,
        "pool.name": args.pool,
        "hostname": args.hostname,
        "bootstrap.release": args.release,
        "bootstrap.repo_url": args.repo_url,
        "proxy.enabled": False if args.no_proxy else None,
    }


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="cloudimg-builder", description="Build a UEFI-bootable ZFS-root cloud disk image")
    p.add_argument("--config", default=None, help="YAML build config")
    p.add_argument("--image-dir", default=None, help="Directory for the image file (default: cwd)")
    p.add_argument("--image-name", default=None, help="Image file name")
    p.add_argument("--size", type=int, default=None, help="Image size in bytes")
    p.add_argument("--mountpoint", default=None, help="Mountpoint root for the target tree")
    p.add_argument("--pool", default=None, help="Pool name")
    p.add_argument("--hostname", default=None, help="Target hostname")
    p.add_argument("--release", default=None, help="Distribution codename (e.g. jammy)")
    p.add_argument("--repo-url", default=None, help="Package repository base URL")
    p.add_argument("--no-proxy", action="store_true", help="Don't use the apt proxy during the build")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to build log")
    p.add_argument("-v", "--verbose", action="store_true", help="Echo captured tool output to the console too")
    p.add_argument("--state", default=None, help="Write a JSON build record here")
    p.add_argument("--stop-after", default=None, help="Stop after step_id (cleanup still runs)")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log, console_level=logging.DEBUG if args.verbose else logging.INFO)
    previous = signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        require_root()
        cfg = with_overrides(load_build_config(args.config), _overrides(args))
        result = run(cfg=cfg, state_path=args.state, stop_after=args.stop_after)
    except BuildError as e:
        logger.exception("Build failed: %s", e)
        return e.exit_code
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    finally:
        signal.signal(signal.SIGTERM, previous)

    logger.info("Image ready: %s (steps: %s)", result.image_path, ", ".join(result.ran_steps))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
