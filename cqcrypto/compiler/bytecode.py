"""Recover the target JVM version of a compiled class file.

Two strategies sit behind the BytecodeInspector protocol:

- ClassFileInspector reads the version fields straight out of the class file
  header (u4 magic, u2 minor_version, u2 major_version).
- JavapInspector disassembles the file with `javap -verbose` and parses the
  `major version:` / `minor version:` lines.

Both return a BytecodeVersion whose label is looked up in JVM_VERSION_MAP.
"""

from __future__ import annotations

import logging
import re
import struct
from pathlib import Path

from ..infra.contracts import CommandRunner
from ..infra.errors import ToolError
from ..infra.models import BytecodeVersion
from ..utils.shell import run_command

logger = logging.getLogger(__name__)

CLASS_MAGIC = 0xCAFEBABE

_MAJOR_RE = re.compile(r"^\s+major\sversion:\s(?P<version>\d+)", re.MULTILINE)
_MINOR_RE = re.compile(r"^\s+minor\sversion:\s(?P<version>\d+)", re.MULTILINE)


def parse_javap_output(text: str) -> BytecodeVersion:
    major = _MAJOR_RE.search(text)
    minor = _MINOR_RE.search(text)
    if major is None or minor is None:
        raise ValueError("javap output lacks major/minor version fields")
    return BytecodeVersion(major=int(major.group("version")), minor=int(minor.group("version")))


class ClassFileInspector:
    def inspect(self, compiled_path: Path) -> BytecodeVersion:
        try:
            with compiled_path.open("rb") as f:
                header = f.read(8)
        except OSError as e:
            raise ToolError(f"Cannot read {compiled_path} file: {e}") from e

        if len(header) < 8:
            raise ToolError(f"Cannot read {compiled_path} file: truncated class file header")
        magic, minor, major = struct.unpack(">IHH", header)
        if magic != CLASS_MAGIC:
            raise ToolError(f"Cannot read {compiled_path} file: bad magic number {magic:#010x}")

        version = BytecodeVersion(major=major, minor=minor)
        logger.debug("%s was compiled with Java %s", compiled_path, version.label)
        return version


class JavapInspector:
    def __init__(self, *, javap: str = "javap", runner: CommandRunner = run_command):
        self.javap = javap
        self.runner = runner

    def inspect(self, compiled_path: Path) -> BytecodeVersion:
        argv = [self.javap, "-verbose", str(compiled_path)]
        try:
            res = self.runner(argv)
        except OSError as e:
            raise ToolError(f"Cannot disassemble {compiled_path} file: {e}") from e

        if not res.ok:
            raise ToolError(
                f"Cannot disassemble {compiled_path} file (exit {res.returncode}): {res.output()}",
                returncode=res.returncode,
                stdout=res.stdout,
                stderr=res.stderr,
            )
        logger.debug("javap output: %s", res.stdout)

        try:
            version = parse_javap_output(res.stdout)
        except ValueError as e:
            raise ToolError(f"Cannot disassemble {compiled_path} file: {e}", stdout=res.stdout) from e

        logger.debug("%s was compiled with Java %s", compiled_path, version.label)
        return version
