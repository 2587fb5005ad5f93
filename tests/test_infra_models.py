from __future__ import annotations

import os
import unittest
from pathlib import Path

from _testutil import ensure_repo_on_path


class TestInfraModels(unittest.TestCase):
    def test_layout_classpath_order(self) -> None:
        ensure_repo_on_path()
        from cqcrypto.infra.models import CryptoLayout

        layout = CryptoLayout(cache_root=Path("/var/chef/cache"))
        self.assertEqual(
            layout.classpath.split(os.pathsep),
            [
                ".",
                "/var/chef/cache/crypto/tmp",
                "/var/chef/cache/crypto/libs/aem/*",
                "/var/chef/cache/crypto/libs/log/*",
            ],
        )
        self.assertEqual(layout.decryptor_class, Path("/var/chef/cache/crypto/Decrypt.class"))

    def test_outcomes(self) -> None:
        ensure_repo_on_path()
        from cqcrypto.infra.errors import DecryptFatalError, FatalError
        from cqcrypto.infra.models import FatalFailure, RecoverableFailure, Success

        self.assertEqual(Success("x").value(), "x")
        self.assertNotIn("hunter2", repr(Success("hunter2")))
        self.assertIsNone(RecoverableFailure("bad padding").value())

        with self.assertRaises(FatalError) as ctx:
            FatalFailure("master key file missing", exit_code=5, detail="stack").value()
        self.assertIsInstance(ctx.exception, DecryptFatalError)
        self.assertIn("master key file missing", str(ctx.exception))

    def test_command_result_output(self) -> None:
        ensure_repo_on_path()
        from cqcrypto.infra.models import CommandResult

        res = CommandResult(argv=("javac",), returncode=1, stdout=" \n", stderr="error: x\n")
        self.assertFalse(res.ok)
        self.assertEqual(res.output(), "error: x")


if __name__ == "__main__":
    unittest.main()
