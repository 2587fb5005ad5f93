from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

import requests

from ..infra.errors import FatalError
from ..infra.models import HttpResponse

logger = logging.getLogger(__name__)


def _url(instance: str, path: str) -> str:
    return instance.rstrip("/") + "/" + path.lstrip("/")


class RequestsHttpClient:
    """Basic-auth HTTP client for CQ instances, built on requests."""

    def __init__(self, *, timeout_s: float = 30.0, session: Optional[requests.Session] = None):
        self.timeout_s = timeout_s
        self.session = session if session is not None else requests.Session()

    def get(self, instance: str, path: str, username: str, password: str) -> HttpResponse:
        url = _url(instance, path)
        logger.debug("GET %s", url)
        try:
            r = self.session.get(url, auth=(username, password), timeout=self.timeout_s)
        except requests.RequestException as e:
            raise FatalError(f"GET {url} failed: {e}") from e
        return HttpResponse(status_code=r.status_code, content=r.content)

    def post_form(
        self,
        instance: str,
        path: str,
        username: str,
        password: str,
        data: Mapping[str, str],
    ) -> HttpResponse:
        url = _url(instance, path)
        logger.debug("POST %s", url)
        try:
            r = self.session.post(url, auth=(username, password), data=dict(data), timeout=self.timeout_s)
        except requests.RequestException as e:
            raise FatalError(f"POST {url} failed: {e}") from e
        return HttpResponse(status_code=r.status_code, content=r.content)

    def download(self, url: str, dest_path: Path) -> int:
        logger.debug("GET %s -> %s", url, dest_path)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout_s) as r:
                if r.status_code != 200:
                    return r.status_code
                with dest_path.open("wb") as f:
                    for chunk in r.iter_content(chunk_size=1024 * 1024):
                        if chunk:
                            f.write(chunk)
                return r.status_code
        except requests.RequestException as e:
            raise FatalError(f"GET {url} failed: {e}") from e
