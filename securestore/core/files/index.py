"""
File Index
==========

The on-disk list of registered logical names, one per line.

The index is rewritten in full on every change (never appended to), via a
temporary sibling and ``os.replace`` so a crash leaves either the old or the
new list, not a torn one.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from securestore.core.file_ops.primitives import remove_quietly
from securestore.utils.paths import temporary_sibling


class FileIndex:
    """Reads and rewrites the newline-separated name list."""

    __slots__ = ("_path", "_encoding")

    def __init__(self, path: Path | str, encoding: str = "utf-8") -> None:
        self._path = Path(path)
        self._encoding = encoding

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[str]:
        """
        Return the stored names in order, creating an empty index if none exists.

        Blank lines and duplicate names are skipped.
        """
        if not self._path.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.touch()
            return []

        names: list[str] = []
        seen: set[str] = set()
        with open(self._path, "r", encoding=self._encoding, newline="") as stream:
            for line in stream:
                name = line.rstrip("\r\n")
                if name and name not in seen:
                    seen.add(name)
                    names.append(name)
        return names

    def write(self, names: Iterable[str]) -> None:
        """Replace the index content with ``names``."""
        tmp = temporary_sibling(self._path)
        try:
            with open(tmp, "w", encoding=self._encoding, newline="\n") as stream:
                for name in names:
                    stream.write(f"{name}\n")
            os.replace(tmp, self._path)
        finally:
            remove_quietly(tmp)
