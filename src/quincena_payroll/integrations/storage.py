"""Local filesystem storage for rendered payslips."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Writes documents under an uploads directory served at ``/uploads``.

    Paths are relative and deterministic, so saving the same document twice
    overwrites the first copy.
    """

    def __init__(self, uploads_dir: str | os.PathLike[str], public_base_url: str = ""):
        self.root = Path(uploads_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        relative = Path(path.lstrip("/"))
        target = (self.root / relative).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Storage path escapes the uploads directory: {path}")
        return target

    def save(self, data: bytes, path: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        # Write then rename so readers never see a half-written file
        tmp = target.with_suffix(target.suffix + ".tmp")
        tmp.write_bytes(data)
        os.replace(tmp, target)

        logger.debug("Stored %d bytes at %s", len(data), target)
        return self.url_for(path)

    def url_for(self, path: str) -> str:
        return f"{self.public_base_url}/uploads/{path.lstrip('/')}"
