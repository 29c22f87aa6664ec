from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from ..errors import FileOperationError, NotFound

logger = logging.getLogger(__name__)

LOCALE_GEN = "etc/locale.gen"


def uncomment_locales(text: str, locales: Iterable[str]) -> str:
    """Uncomment '#  <locale>.UTF-8 ...' lines for the requested locales.

    Trailing content is preserved; other lines are left untouched, and an
    already-enabled line simply doesn't match.
    """

    patterns = [re.compile(rf"^\s*#\s*({re.escape(loc)}\.UTF-8.*)$") for loc in locales]
    out = []
    for line in text.splitlines(keepends=True):
        body = line.rstrip("\n")
        for pat in patterns:
            m = pat.match(body)
            if m:
                line = m.group(1) + line[len(body):]
                break
        out.append(line)
    return "".join(out)


def enable_locales(target_root: Path, locales: Iterable[str]) -> None:
    path = Path(target_root) / LOCALE_GEN
    if not path.exists():
        raise NotFound(f"{path} does not exist; was the base system bootstrapped?")

    wanted = list(locales)
    try:
        before = path.read_text(encoding="utf-8")
        after = uncomment_locales(before, wanted)
        if after != before:
            path.write_text(after, encoding="utf-8")
    except OSError as e:
        raise FileOperationError(f"Unable to rewrite {path}: {e}") from e
    logger.info("Enabled locales %s in %s", " ".join(wanted), path)
