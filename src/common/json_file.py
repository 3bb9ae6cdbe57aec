"""JSON file access with atomic replacement on write."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any

logger = logging.getLogger(__name__)


class JsonFile:
    """A JSON document stored at a fixed path."""

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        """Return True if the file is present on disk."""
        return os.path.isfile(self.path)

    def read(self) -> Any:
        """Parse and return the document.

        Raises:
            ValueError: If the file does not contain valid JSON.
        """
        with open(self.path, "r", encoding="utf-8") as fh:
            try:
                return json.load(fh)
            except json.JSONDecodeError as exc:
                raise ValueError(f'"{self.path}" does not contain valid JSON: {exc}') from exc

    def write(self, data: Any) -> None:
        """Serialize data and atomically replace the file.

        The document is written to a temporary file in the same directory,
        flushed to disk and moved over the target, so readers never observe
        a partially written file.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=4)
                fh.write("\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Wrote %s", self.path)
