"""Atomic JSON file writes shared by the cache, settings and secret stores."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def write_json_atomic(path: Path, payload: Any, *, pretty: bool = False, mode: int | None = None) -> None:
    """Write JSON to a temp file in the target directory, then rename over ``path``.

    ``mode`` sets the file permissions before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            if mode is not None:
                os.chmod(tmp, mode)
            if pretty:
                json.dump(payload, fh, indent=2, sort_keys=True)
                fh.write("\n")
            else:
                json.dump(payload, fh)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
