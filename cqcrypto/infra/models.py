from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .errors import DecryptFatalError

# Class-file (major, minor) -> Java release label.
# 45.3-52.0 cover Java 1 to 8; 53+ are the later feature releases.
JVM_VERSION_MAP: Dict[str, str] = {
    "45.3": "1",
    "46.0": "2",
    "47.0": "3",
    "48.0": "4",
    "49.0": "5",
    "50.0": "6",
    "51.0": "7",
    "52.0": "8",
    "53.0": "9",
    "54.0": "10",
    "55.0": "11",
    "56.0": "12",
    "57.0": "13",
    "58.0": "14",
    "59.0": "15",
    "60.0": "16",
    "61.0": "17",
    "62.0": "18",
    "63.0": "19",
    "64.0": "20",
    "65.0": "21",
    "66.0": "22",
    "67.0": "23",
}

UNKNOWN_TARGET = "unknown"


@dataclass(frozen=True)
class BytecodeVersion:
    """Major/minor pair recorded in a compiled class file."""

    major: int
    minor: int

    @property
    def key(self) -> str:
        return f"{self.major}.{self.minor}"

    @property
    def label(self) -> str:
        return JVM_VERSION_MAP.get(self.key, UNKNOWN_TARGET)


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ArchiveFilterSpec:
    """One extraction step: entries of archive_path matching entry_filter go to dest_dir."""

    archive_path: Path
    entry_filter: str
    dest_dir: Path


@dataclass(frozen=True)
class LibraryManifest:
    """Auxiliary libraries to download: relative path -> expected sha256."""

    server: str
    data: Dict[str, str] = field(default_factory=dict)

    def url_for(self, rel_path: str) -> str:
        return self.server + rel_path


@dataclass(frozen=True)
class CryptoLayout:
    """On-disk layout of the crypto facility under <cache_root>/crypto.

    The classpath order is fixed: the helper resolves the master key file
    from the classpath, so tmp_dir must precede the library globs.
    """

    cache_root: Path

    @property
    def root(self) -> Path:
        return self.cache_root / "crypto"

    @property
    def tmp_dir(self) -> Path:
        return self.root / "tmp"

    @property
    def aem_dir(self) -> Path:
        return self.root / "libs" / "aem"

    @property
    def log_dir(self) -> Path:
        return self.root / "libs" / "log"

    @property
    def decryptor_path(self) -> Path:
        """Path to the helper without extension."""
        return self.root / "Decrypt"

    @property
    def decryptor_source(self) -> Path:
        return self.decryptor_path.with_suffix(".java")

    @property
    def decryptor_class(self) -> Path:
        return self.decryptor_path.with_suffix(".class")

    @property
    def classpath(self) -> str:
        return os.pathsep.join(
            [
                ".",
                str(self.tmp_dir),
                str(self.aem_dir / "*"),
                str(self.log_dir / "*"),
            ]
        )


# ---------------------------------------------------------------------------
# Decrypt outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Success:
    plaintext: str = field(repr=False)

    def value(self) -> Optional[str]:
        return self.plaintext


@dataclass(frozen=True)
class RecoverableFailure:
    """This input failed to decrypt; treat the value as absent."""

    detail: str = ""

    def value(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class FatalFailure:
    """The environment is broken; the enclosing workflow must stop."""

    reason: str
    exit_code: Optional[int] = None
    detail: str = ""

    def value(self) -> Optional[str]:
        msg = self.reason if not self.detail else f"{self.reason}: {self.detail}"
        raise DecryptFatalError(msg, exit_code=self.exit_code)


DecryptOutcome = Union[Success, RecoverableFailure, FatalFailure]


# ---------------------------------------------------------------------------
# Collaborator results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandResult:
    argv: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def output(self) -> str:
        """Combined diagnostic output for error messages."""
        parts = [p.strip() for p in (self.stdout, self.stderr) if p and p.strip()]
        return "\n".join(parts)


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    content: bytes = field(default=b"", repr=False)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")
