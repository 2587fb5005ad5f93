from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from .archive.extractor import UnzipExtractor, ZipfileExtractor
from .archive.materializer import DependencyMaterializer
from .artifacts.fetcher import ChecksumArtifactFetcher
from .compiler.bytecode import ClassFileInspector, JavapInspector
from .compiler.cache import CompiledArtifactCache
from .config import CryptoConfig
from .crypto.decrypt import DecryptInvoker
from .crypto.encrypt import EncryptGateway
from .http.client import RequestsHttpClient
from .infra.contracts import (
    ArchiveExtractor,
    ArtifactFetcher,
    BackgroundSpawner,
    BytecodeInspector,
    CommandRunner,
    HttpClient,
)
from .infra.errors import ValidationError
from .infra.models import Credentials, CryptoLayout, DecryptOutcome
from .secrets.master_key import MasterKeyManager
from .utils.fs import ensure_dir
from .utils.shell import run_command, spawn_background

logger = logging.getLogger(__name__)


@dataclass
class CryptoFacility:
    """Everything needed to decrypt and encrypt CQ protected values.

    Resulting layout under <cache_root>:

      crypto
      |-- Decrypt.class
      |-- Decrypt.java
      |-- libs
      |   |-- aem   (vendor crypto libraries)
      |   `-- log   (slf4j libraries)
      `-- tmp       (master keys, extraction scratch)
    """

    config: CryptoConfig
    materializer: DependencyMaterializer
    fetcher: ArtifactFetcher
    compiler: CompiledArtifactCache
    keys: MasterKeyManager
    decryptor: DecryptInvoker
    encryptor: EncryptGateway

    @property
    def layout(self) -> CryptoLayout:
        return self.config.layout

    def prepare_directories(self) -> None:
        ensure_dir(self.layout.aem_dir)
        ensure_dir(self.layout.log_dir)
        ensure_dir(self.layout.tmp_dir, mode=0o700)

    def load_decryptor(self) -> bool:
        """Put libraries and the compiled helper in place.

        Returns True when the helper was (re)compiled.
        """
        self.prepare_directories()
        self.materializer.ensure_libraries()
        self.fetcher.ensure_artifacts(self.config.log_libs, self.layout.log_dir)

        source_changed = False
        if self.config.decryptor_source is not None:
            source_changed = self.compiler.deploy_source(self.config.decryptor_source)
        elif not self.layout.decryptor_source.is_file():
            raise ValidationError(
                f"No decryptor_source configured and {self.layout.decryptor_source} does not exist"
            )

        return self.compiler.ensure_compiled(
            self.layout.decryptor_source,
            self.config.jdk_version,
            force=source_changed,
        )

    def _remote(self, instance: Optional[str], credentials: Optional[Credentials]) -> Tuple[str, Credentials]:
        remote = self.config.remote
        if instance is None:
            if remote is None:
                raise ValidationError("No instance given and no remote configured")
            instance = remote.instance
        if credentials is None:
            if remote is None:
                raise ValidationError("No credentials given and no remote configured")
            credentials = remote.credentials()
        return instance, credentials

    def load_master_key(self, instance: Optional[str] = None, credentials: Optional[Credentials] = None) -> str:
        instance, credentials = self._remote(instance, credentials)
        return self.keys.load_master_key(instance, credentials)

    def unload_master_key(self, handle: str) -> bool:
        return self.keys.unload_master_key(handle)

    @contextmanager
    def master_key(self, instance: Optional[str] = None, credentials: Optional[Credentials] = None) -> Iterator[str]:
        instance, credentials = self._remote(instance, credentials)
        with self.keys.master_key(instance, credentials) as handle:
            yield handle

    def decrypt(self, handle: str, ciphertext: str) -> DecryptOutcome:
        return self.decryptor.decrypt(handle, ciphertext)

    def decrypt_many(self, handle: str, ciphertexts: Iterable[str]) -> List[Optional[str]]:
        return self.decryptor.decrypt_many(handle, ciphertexts)

    def encrypt(
        self,
        plaintext: str,
        instance: Optional[str] = None,
        credentials: Optional[Credentials] = None,
    ) -> str:
        instance, credentials = self._remote(instance, credentials)
        return self.encryptor.encrypt(instance, credentials, plaintext)


def build_extractor(config: CryptoConfig, runner: CommandRunner) -> ArchiveExtractor:
    if config.extractor == "zipfile":
        return ZipfileExtractor()
    if config.extractor == "unzip":
        return UnzipExtractor(unzip=config.tools.unzip, runner=runner)
    raise ValidationError(f"Unknown extractor kind: {config.extractor!r}")


def build_inspector(config: CryptoConfig, runner: CommandRunner) -> BytecodeInspector:
    if config.inspector == "classfile":
        return ClassFileInspector()
    if config.inspector == "javap":
        return JavapInspector(javap=config.tools.javap, runner=runner)
    raise ValidationError(f"Unknown inspector kind: {config.inspector!r}")


def build_facility(
    config: CryptoConfig,
    *,
    http: Optional[HttpClient] = None,
    runner: CommandRunner = run_command,
    spawn: BackgroundSpawner = spawn_background,
    extractor: Optional[ArchiveExtractor] = None,
    inspector: Optional[BytecodeInspector] = None,
    fetcher: Optional[ArtifactFetcher] = None,
) -> CryptoFacility:
    """Wire the adapters selected by config. Keyword overrides win."""
    layout = config.layout
    use_http: HttpClient = http if http is not None else RequestsHttpClient(timeout_s=config.http_timeout_s)
    use_extractor = extractor if extractor is not None else build_extractor(config, runner)
    use_inspector = inspector if inspector is not None else build_inspector(config, runner)

    return CryptoFacility(
        config=config,
        materializer=DependencyMaterializer(
            layout=layout,
            primary_artifact=config.primary_artifact,
            extractor=use_extractor,
            settings=config.aem_libs,
        ),
        fetcher=fetcher if fetcher is not None else ChecksumArtifactFetcher(http=use_http),
        compiler=CompiledArtifactCache(
            layout=layout,
            inspector=use_inspector,
            javac=config.tools.javac,
            runner=runner,
        ),
        keys=MasterKeyManager(layout=layout, http=use_http),
        decryptor=DecryptInvoker(
            layout=layout,
            java=config.tools.java,
            entropy_command=config.entropy_command,
            runner=runner,
            spawn=spawn,
        ),
        encryptor=EncryptGateway(http=use_http),
    )
