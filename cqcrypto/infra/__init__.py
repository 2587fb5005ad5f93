from __future__ import annotations

from .models import (
    ArchiveFilterSpec,
    BytecodeVersion,
    CommandResult,
    Credentials,
    CryptoLayout,
    DecryptOutcome,
    FatalFailure,
    HttpResponse,
    LibraryManifest,
    RecoverableFailure,
    Success,
)

from .errors import (
    CryptoError,
    DecryptFatalError,
    ExtractionError,
    FatalError,
    HttpStatusError,
    IntegrityError,
    MasterKeyError,
    ProtocolError,
    ToolError,
    ValidationError,
)

from .contracts import (
    ArchiveExtractor,
    ArtifactFetcher,
    BackgroundProcess,
    BackgroundSpawner,
    BytecodeInspector,
    CommandRunner,
    HttpClient,
)

__all__ = [
    "ArchiveFilterSpec",
    "BytecodeVersion",
    "CommandResult",
    "Credentials",
    "CryptoLayout",
    "DecryptOutcome",
    "FatalFailure",
    "HttpResponse",
    "LibraryManifest",
    "RecoverableFailure",
    "Success",
    "CryptoError",
    "DecryptFatalError",
    "ExtractionError",
    "FatalError",
    "HttpStatusError",
    "IntegrityError",
    "MasterKeyError",
    "ProtocolError",
    "ToolError",
    "ValidationError",
    "ArchiveExtractor",
    "ArtifactFetcher",
    "BackgroundProcess",
    "BackgroundSpawner",
    "BytecodeInspector",
    "CommandRunner",
    "HttpClient",
]
