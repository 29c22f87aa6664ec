from __future__ import annotations

import logging
from pathlib import Path

DEFAULT_LOG_PATH = "/var/log/cloudimg-builder.log"
FALLBACK_LOG_NAME = "cloudimg-builder.log"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def _open_build_log(log_path: str) -> tuple[logging.FileHandler, str]:
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    console_level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send the whole build transcript to log_path and a summary to the console.

    The file handler runs at DEBUG so captured debootstrap/apt/zfs output
    (logged by run_cmd) ends up in the build log. The console only shows
    console_level and above.

    Falls back to ./cloudimg-builder.log when log_path can't be opened.
    Returns the file path actually in use.
    """

    root = logging.getLogger()
    if getattr(root, "_cloudimg_log_path", None):
        return root._cloudimg_log_path  # type: ignore[attr-defined]

    root.setLevel(logging.DEBUG)
    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    file_handler, chosen_path = _open_build_log(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(console_level)
        console.setFormatter(fmt)
        root.addHandler(console)

    setattr(root, "_cloudimg_log_path", chosen_path)

    logging.getLogger(__name__).info("Build log: %s (requested %s)", chosen_path, log_path)
    return chosen_path
