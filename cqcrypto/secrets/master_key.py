from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager
from typing import Iterator

from ..infra.contracts import HttpClient
from ..infra.errors import HttpStatusError, MasterKeyError
from ..infra.models import Credentials, CryptoLayout

logger = logging.getLogger(__name__)

MASTER_KEY_PATH = "/etc/key/master"


class MasterKeyManager:
    """Fetch the instance master key onto disk and remove it again.

    Key files are named by a random identifier (the handle) and live only in
    the crypto tmp directory, which the decrypt helper reads via its
    classpath. Key bytes are never logged.
    """

    def __init__(self, *, layout: CryptoLayout, http: HttpClient):
        self.layout = layout
        self.http = http

    def load_master_key(self, instance: str, credentials: Credentials) -> str:
        resp = self.http.get(instance, MASTER_KEY_PATH, credentials.username, credentials.password)
        if resp.status_code != 200:
            raise HttpStatusError(
                f"Can't download master key! Response code: {resp.status_code}",
                status_code=resp.status_code,
            )
        return self.save_key(resp.content)

    def save_key(self, content: bytes) -> str:
        handle = str(uuid.uuid4())
        path = self.layout.tmp_dir / handle

        logger.debug("Master key name: %s", handle)
        logger.debug("Master key path: %s", path)

        try:
            fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        except OSError as e:
            raise MasterKeyError(f"Can't write master key to {path}: {e}") from e

        return handle

    def unload_master_key(self, handle: str) -> bool:
        """Delete the key file. Failures are logged, never raised."""
        if not handle or handle in (".", "..") or os.path.basename(handle) != handle:
            logger.error("Refusing to delete master key with invalid handle %r", handle)
            return False
        path = self.layout.tmp_dir / handle
        logger.info("Deleting %s...", path)
        try:
            path.unlink()
        except OSError as e:
            logger.error("Can't delete %s file: %s", path, e)
            return False
        logger.info("Master key file has been successfully deleted")
        return True

    @contextmanager
    def master_key(self, instance: str, credentials: Credentials) -> Iterator[str]:
        handle = self.load_master_key(instance, credentials)
        try:
            yield handle
        finally:
            self.unload_master_key(handle)
