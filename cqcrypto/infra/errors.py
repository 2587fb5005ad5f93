from __future__ import annotations

from typing import Optional


class CryptoError(Exception):
    """Base class for crypto facility errors."""


class ValidationError(CryptoError):
    """Raised when a config or input fails validation."""


class FatalError(CryptoError):
    """Raised when the environment is broken and the enclosing workflow must stop."""


class ToolError(FatalError):
    """Raised when an external tool cannot run or exits non-zero."""

    def __init__(self, message: str, *, returncode: Optional[int] = None, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ExtractionError(ToolError):
    """Raised when entries cannot be extracted out of an archive."""


class IntegrityError(FatalError):
    """Raised when an upstream artifact does not have the expected shape or checksum."""


class HttpStatusError(FatalError):
    """Raised when a remote endpoint answers with an unexpected status code."""

    def __init__(self, message: str, *, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(FatalError):
    """Raised when a remote endpoint answers with an unusable payload."""


class MasterKeyError(FatalError):
    """Raised when master key material cannot be fetched or persisted."""


class DecryptFatalError(FatalError):
    """Raised when a fatal decrypt outcome is unwrapped."""

    def __init__(self, message: str, *, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code
