"""
Content Digest
==============

Whole-file SHA-256 fingerprints used as integrity witnesses.

Detection only: a mismatch tells the caller the stored bytes changed since
the store last wrote them. Nothing here repairs or rolls back content.
"""

from __future__ import annotations

import hashlib
import hmac
from pathlib import Path
from typing import Final

DIGEST_ALGORITHM: Final[str] = "sha256"
DIGEST_HEX_LENGTH: Final[int] = 64
_READ_CHUNK_SIZE: Final[int] = 64 * 1024


def compute_file_hash(path: Path | str, chunk_size: int = _READ_CHUNK_SIZE) -> str:
    """
    Compute the hex digest of the file's current on-disk bytes.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    digest = hashlib.new(DIGEST_ALGORITHM)
    with open(path, "rb") as stream:
        while chunk := stream.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def hashes_match(expected: str, actual: str) -> bool:
    """Constant-time, case-insensitive comparison of two hex digests."""
    return hmac.compare_digest(expected.lower().encode("ascii"), actual.lower().encode("ascii"))
