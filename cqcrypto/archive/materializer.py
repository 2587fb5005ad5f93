from __future__ import annotations

import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import List

from ..config import AemLibsSettings
from ..infra.contracts import ArchiveExtractor
from ..infra.errors import IntegrityError
from ..infra.models import ArchiveFilterSpec, CryptoLayout
from ..utils.fs import list_files

logger = logging.getLogger(__name__)


class DependencyMaterializer:
    """Unpack the vendor crypto libraries out of the primary artifact.

    The libraries sit three archives deep:

      primary artifact
      `-- static/app/<standalone>.jar
          `-- resources/install/0/com.adobe.granite.crypto-<version>.jar
              `-- META-INF/lib/*.jar

    Each "exactly one" check aborts on any other count.
    """

    def __init__(
        self,
        *,
        layout: CryptoLayout,
        primary_artifact: Path,
        extractor: ArchiveExtractor,
        settings: AemLibsSettings = AemLibsSettings(),
    ):
        self.layout = layout
        self.primary_artifact = primary_artifact
        self.extractor = extractor
        self.settings = settings

    def libraries_present(self) -> bool:
        libs = list_files(self.layout.aem_dir)
        logger.debug("Existing AEM libs: %s", [p.name for p in libs])
        return len(libs) == self.settings.expected_count

    def ensure_libraries(self) -> bool:
        """Make sure the vendor libraries are in place.

        Returns True when anything had to be extracted.
        """
        if self.libraries_present():
            logger.debug("All AEM crypto libraries are in place")
            return False

        logger.info("Missing crypto AEM libraries. Extracting from %s", self.primary_artifact)
        aem_dir = self.layout.aem_dir
        aem_dir.mkdir(parents=True, exist_ok=True)
        self.layout.tmp_dir.mkdir(parents=True, exist_ok=True)

        scratch = Path(tempfile.mkdtemp(prefix="extract-", dir=str(self.layout.tmp_dir)))
        try:
            self._extract(ArchiveFilterSpec(self.primary_artifact, self.settings.standalone_filter, scratch))
            standalone = self._single_standalone(scratch)
            self._extract(ArchiveFilterSpec(standalone, self.settings.crypto_bundle_filter, aem_dir))
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

        bundle = self._single_crypto_bundle()
        self._extract(ArchiveFilterSpec(bundle, self.settings.bundle_libs_filter, aem_dir))

        logger.info("All AEM crypto libraries are in place")
        return True

    def _extract(self, step: ArchiveFilterSpec) -> None:
        logger.debug("Extracting %s from %s to %s", step.entry_filter, step.archive_path, step.dest_dir)
        self.extractor.extract(step.archive_path, step.entry_filter, step.dest_dir)

    def _single_standalone(self, scratch: Path) -> Path:
        found = list_files(scratch)
        if len(found) != 1:
            raise IntegrityError(
                "Scratch directory should contain only one standalone JAR file. "
                f"Found: {[p.name for p in found]}. Either the primary artifact "
                f"{self.primary_artifact} is broken or its layout has changed"
            )
        return found[0]

    def _single_crypto_bundle(self) -> Path:
        pattern = re.compile(self.settings.crypto_bundle_pattern)
        matches: List[Path] = [p for p in list_files(self.layout.aem_dir) if pattern.search(p.name)]
        if len(matches) != 1:
            raise IntegrityError(
                f"Expected single file matching {self.settings.crypto_bundle_pattern!r} in "
                f"{self.layout.aem_dir}, but found: {[p.name for p in matches]}"
            )
        return matches[0]
