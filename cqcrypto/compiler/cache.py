from __future__ import annotations

import logging
from pathlib import Path

from ..infra.contracts import BytecodeInspector, CommandRunner
from ..infra.errors import ToolError, ValidationError
from ..infra.models import CryptoLayout
from ..utils.fs import atomic_write_bytes
from ..utils.shell import run_command

logger = logging.getLogger(__name__)


class CompiledArtifactCache:
    """Build the decrypt helper only when the compiled class is stale."""

    def __init__(
        self,
        *,
        layout: CryptoLayout,
        inspector: BytecodeInspector,
        javac: str = "javac",
        runner: CommandRunner = run_command,
    ):
        self.layout = layout
        self.inspector = inspector
        self.javac = javac
        self.runner = runner

    def needs_rebuild(self, source_path: Path, desired_label: str) -> bool:
        compiled = source_path.with_suffix(".class")
        if not compiled.exists():
            logger.debug("%s does not exist", compiled)
            return True
        actual = self.inspector.inspect(compiled).label
        if actual != desired_label:
            logger.info("%s was compiled for Java %s, wanted %s", compiled, actual, desired_label)
            return True
        return False

    def ensure_compiled(self, source_path: Path, desired_label: str, force: bool = False) -> bool:
        """Compile source_path if needed. Returns True when it was (re)built."""
        if not force and not self.needs_rebuild(source_path, desired_label):
            logger.debug("%s is up to date", source_path.with_suffix(".class"))
            return False
        self.compile(source_path)
        return True

    def compile(self, source_path: Path) -> None:
        # javac resolves the source by its name relative to the crypto root.
        argv = [self.javac, "-cp", self.layout.classpath, source_path.name]
        logger.debug("Compilation command: %s", " ".join(argv))
        try:
            res = self.runner(argv, cwd=self.layout.root)
        except OSError as e:
            raise ToolError(f"Compilation error: {e}") from e

        if not res.ok:
            raise ToolError(
                f"Compilation error (exit {res.returncode}): {res.output()}",
                returncode=res.returncode,
                stdout=res.stdout,
                stderr=res.stderr,
            )
        logger.info("Decryptor successfully compiled")

    def deploy_source(self, template_path: Path) -> bool:
        """Copy the helper source into place. Returns True if it changed."""
        if not template_path.is_file():
            raise ValidationError(f"Decryptor source not found: {template_path}")
        content = template_path.read_bytes()
        dest = self.layout.decryptor_source
        if dest.is_file() and dest.read_bytes() == content:
            return False
        atomic_write_bytes(dest, content, mode=0o644)
        logger.info("Deployed decryptor source to %s", dest)
        return True
