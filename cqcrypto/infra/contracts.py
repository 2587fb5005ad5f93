from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Sequence

from .models import BytecodeVersion, CommandResult, HttpResponse, LibraryManifest


class CommandRunner(Protocol):
    def __call__(self, argv: Sequence[str], *, cwd: Optional[Path] = None) -> CommandResult:
        raise NotImplementedError


class BackgroundProcess(Protocol):
    pid: int

    def send_signal(self, sig: int) -> None:
        raise NotImplementedError

    def wait(self, timeout: Optional[float] = None) -> Any:
        raise NotImplementedError

    def kill(self) -> None:
        raise NotImplementedError

    def poll(self) -> Optional[int]:
        raise NotImplementedError


class BackgroundSpawner(Protocol):
    def __call__(self, argv: Sequence[str]) -> BackgroundProcess:
        raise NotImplementedError


class HttpClient(Protocol):
    def get(self, instance: str, path: str, username: str, password: str) -> HttpResponse:
        raise NotImplementedError

    def post_form(
        self,
        instance: str,
        path: str,
        username: str,
        password: str,
        data: Mapping[str, str],
    ) -> HttpResponse:
        raise NotImplementedError

    def download(self, url: str, dest_path: Path) -> int:
        """Stream url into dest_path; return the HTTP status code."""
        raise NotImplementedError


class ArchiveExtractor(Protocol):
    def extract(self, archive_path: Path, entry_filter: str, dest_dir: Path) -> None:
        raise NotImplementedError


class BytecodeInspector(Protocol):
    def inspect(self, compiled_path: Path) -> BytecodeVersion:
        raise NotImplementedError


class ArtifactFetcher(Protocol):
    def ensure_artifacts(self, manifest: LibraryManifest, dest_dir: Path) -> List[Path]:
        raise NotImplementedError
