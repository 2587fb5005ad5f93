from __future__ import annotations

import json
import logging

from ..infra.contracts import HttpClient
from ..infra.errors import HttpStatusError, ProtocolError
from ..infra.models import Credentials

logger = logging.getLogger(__name__)

CRYPTO_CONSOLE_PATH = "/system/console/crypto/.json"


class EncryptGateway:
    """Encrypt values with the instance's crypto support console."""

    def __init__(self, *, http: HttpClient):
        self.http = http

    def encrypt(self, instance: str, credentials: Credentials, plaintext: str) -> str:
        resp = self.http.post_form(
            instance,
            CRYPTO_CONSOLE_PATH,
            credentials.username,
            credentials.password,
            {"datum": plaintext},
        )
        if resp.status_code != 200:
            raise HttpStatusError(f"Crypto console returned {resp.status_code}!", status_code=resp.status_code)

        logger.debug("Crypto console response: %s", resp.text)

        try:
            payload = json.loads(resp.text)
        except ValueError as e:
            raise ProtocolError(f"Crypto console returned invalid JSON: {e}") from e

        protected = payload.get("protected") if isinstance(payload, dict) else None
        if not isinstance(protected, str) or not protected:
            raise ProtocolError("Crypto console response lacks a 'protected' value")
        return protected
