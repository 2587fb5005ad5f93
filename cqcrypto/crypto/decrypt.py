from __future__ import annotations

import logging
import time
from contextlib import nullcontext
from typing import ContextManager, Dict, Iterable, List, Optional, Sequence

from ..infra.contracts import BackgroundSpawner, CommandRunner
from ..infra.models import (
    CommandResult,
    CryptoLayout,
    DecryptOutcome,
    FatalFailure,
    RecoverableFailure,
    Success,
)
from ..utils.shell import auxiliary_process, run_command, spawn_background

logger = logging.getLogger(__name__)

DECRYPTOR_CLASS = "Decrypt"

# Exit codes of the Decrypt helper.
RECOVERABLE_EXIT_CODE = 3
FATAL_EXIT_CODES: Dict[int, str] = {
    1: "wrong number of arguments",
    2: "master key unreadable",
    4: "cipher initialization failed",
    5: "master key file missing",
}


def outcome_for(res: CommandResult) -> DecryptOutcome:
    """Map a finished helper run onto a decrypt outcome."""
    if res.returncode == 0:
        # Get rid of leading/trailing whitespace from the output
        return Success(plaintext=res.stdout.strip())
    if res.returncode == RECOVERABLE_EXIT_CODE:
        return RecoverableFailure(detail=res.stderr.strip())
    reason = FATAL_EXIT_CODES.get(res.returncode, f"unexpected exit code {res.returncode}")
    return FatalFailure(reason=reason, exit_code=res.returncode, detail=res.output())


class DecryptInvoker:
    """Run the compiled Decrypt helper for one value at a time.

    The helper's cipher initialization blocks on /dev/random and can take a
    minute or more on an idle host. An entropy feeder (rngd by default) runs
    for the duration of each call, which brings it down to milliseconds.
    """

    def __init__(
        self,
        *,
        layout: CryptoLayout,
        java: str = "java",
        entropy_command: Sequence[str] = (),
        runner: CommandRunner = run_command,
        spawn: BackgroundSpawner = spawn_background,
    ):
        self.layout = layout
        self.java = java
        self.entropy_command = tuple(entropy_command)
        self.runner = runner
        self.spawn = spawn

    def _entropy(self) -> ContextManager[object]:
        if not self.entropy_command:
            return nullcontext()
        return auxiliary_process(self.entropy_command, spawn=self.spawn)

    def decrypt(self, handle: str, ciphertext: str) -> DecryptOutcome:
        argv = [self.java, "-cp", self.layout.classpath, DECRYPTOR_CLASS, handle, ciphertext]
        logger.debug("Decrypt command: %s", " ".join(argv))

        started = time.monotonic()
        try:
            with self._entropy():
                try:
                    res = self.runner(argv, cwd=self.layout.root)
                except OSError as e:
                    return FatalFailure(reason="decrypt helper could not be started", detail=str(e))
        except OSError as e:
            return FatalFailure(reason="entropy feeder could not be managed", detail=str(e))

        logger.debug("Decrypt stderr: %s", res.stderr)
        logger.debug("Decrypt execution time: %.3fs", time.monotonic() - started)

        outcome = outcome_for(res)
        if isinstance(outcome, RecoverableFailure):
            logger.error("Error while decrypting %s", ciphertext)
        elif isinstance(outcome, FatalFailure):
            logger.debug("Decryption error: %s (exit %s)", outcome.reason, outcome.exit_code)
        return outcome

    def decrypt_many(self, handle: str, ciphertexts: Iterable[str]) -> List[Optional[str]]:
        """Decrypt each value in order.

        Values that fail to decrypt come back as None. A fatal outcome raises
        DecryptFatalError and stops processing.
        """
        return [self.decrypt(handle, c).value() for c in ciphertexts]
