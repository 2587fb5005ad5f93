from __future__ import annotations

import fnmatch
import logging
import shutil
import zipfile
from pathlib import Path
from typing import List

from ..infra.contracts import CommandRunner
from ..infra.errors import ExtractionError
from ..utils.shell import run_command

logger = logging.getLogger(__name__)


class ZipfileExtractor:
    """Extract matching archive entries with the zipfile module.

    Mirrors `unzip -o -j`: existing files are overwritten, directory
    structure is dropped, and wildcards match across '/'.
    """

    def extract(self, archive_path: Path, entry_filter: str, dest_dir: Path) -> None:
        logger.debug("Extracting %r from %s into %s", entry_filter, archive_path, dest_dir)
        try:
            with zipfile.ZipFile(archive_path) as zf:
                members = [
                    info for info in zf.infolist()
                    if not info.is_dir() and fnmatch.fnmatchcase(info.filename, entry_filter)
                ]
                if not members:
                    raise ExtractionError(
                        f"Can't extract content out of {archive_path}: "
                        f"filename not matched: {entry_filter}"
                    )
                dest_dir.mkdir(parents=True, exist_ok=True)
                written: List[str] = []
                for info in members:
                    name = Path(info.filename).name
                    with zf.open(info) as src, (dest_dir / name).open("wb") as dst:
                        shutil.copyfileobj(src, dst)
                    written.append(name)
        except (OSError, zipfile.BadZipFile) as e:
            raise ExtractionError(f"Can't extract content out of {archive_path}: {e}", stderr=str(e)) from e

        logger.debug("Archive %s successfully extracted: %s", archive_path, written)


class UnzipExtractor:
    """Extract matching archive entries with the unzip tool."""

    def __init__(self, *, unzip: str = "unzip", runner: CommandRunner = run_command):
        self.unzip = unzip
        self.runner = runner

    def extract(self, archive_path: Path, entry_filter: str, dest_dir: Path) -> None:
        argv = [self.unzip, "-o", "-b", "-j", str(archive_path), entry_filter, "-d", str(dest_dir)]
        logger.debug("Unzip command: %s", " ".join(argv))
        try:
            res = self.runner(argv)
        except OSError as e:
            raise ExtractionError(f"Can't extract content out of {archive_path}: {e}") from e

        if not res.ok:
            raise ExtractionError(
                f"Can't extract content out of {archive_path} (exit {res.returncode}): {res.output()}",
                returncode=res.returncode,
                stdout=res.stdout,
                stderr=res.stderr,
            )
        logger.debug("Archive %s successfully extracted:\n%s", archive_path, res.stdout)
