"""Content checksums for artifacts (sha256 + BLAKE3, single pass)."""
import hashlib
from pathlib import Path
from typing import Tuple

from blake3 import blake3

CHUNK_SIZE = 65536  # 64KB chunks


def hash_file(path: Path) -> Tuple[str, str]:
    """Return (sha256 hex, blake3 hex) of a file."""
    sha256 = hashlib.sha256()
    hasher = blake3()
    with open(path, "rb") as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            sha256.update(chunk)
            hasher.update(chunk)
    return sha256.hexdigest(), hasher.hexdigest()

