from __future__ import annotations

from pathlib import Path

from ..utils.hashing import sha256_file as _sha256_file


def sha256_file(path: Path) -> str:
    """Hex SHA-256 of a library file, compared against manifest checksums."""
    return _sha256_file(path)
