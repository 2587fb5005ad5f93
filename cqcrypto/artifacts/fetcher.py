from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from posixpath import basename
from typing import List
from urllib.parse import urlparse

from ..infra.contracts import HttpClient
from ..infra.errors import HttpStatusError, IntegrityError
from ..infra.models import LibraryManifest
from .checksums import sha256_file

logger = logging.getLogger(__name__)


def uri_basename(url: str) -> str:
    return basename(urlparse(url).path)


class ChecksumArtifactFetcher:
    """Download a fixed set of libraries, verifying each against its sha256.

    Files already present with the expected checksum are left alone.
    """

    def __init__(self, *, http: HttpClient):
        self.http = http

    def ensure_artifacts(self, manifest: LibraryManifest, dest_dir: Path) -> List[Path]:
        dest_dir.mkdir(parents=True, exist_ok=True)
        out: List[Path] = []
        for rel_path, checksum in sorted(manifest.data.items()):
            url = manifest.url_for(rel_path)
            dest = dest_dir / uri_basename(url)
            self._ensure_one(url, dest, checksum.lower())
            out.append(dest)
        return out

    def _ensure_one(self, url: str, dest: Path, checksum: str) -> None:
        if dest.is_file() and sha256_file(dest) == checksum:
            logger.debug("%s is up to date", dest)
            return

        logger.info("Downloading %s to %s", url, dest)
        fd, tmp = tempfile.mkstemp(prefix=f".{dest.name}.", dir=str(dest.parent))
        os.close(fd)
        tmp_path = Path(tmp)
        try:
            status = self.http.download(url, tmp_path)
            if status != 200:
                raise HttpStatusError(f"Can't download {url}! Response code: {status}", status_code=status)
            actual = sha256_file(tmp_path)
            if actual != checksum:
                raise IntegrityError(f"Checksum mismatch for {url}: expected {checksum}, got {actual}")
            os.chmod(tmp_path, 0o644)
            tmp_path.replace(dest)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
