from __future__ import annotations

import os
import signal
import sys
import tempfile
import unittest
from pathlib import Path

from _testutil import FakeRunner, FakeSpawner, ensure_repo_on_path, result

ensure_repo_on_path()

from cqcrypto.infra.models import CryptoLayout  # noqa: E402

HANDLE = "0b9c1f3e-5d7a-4c1e-9f0a-2b3c4d5e6f70"
ENTROPY = ("rngd", "-r", "/dev/urandom", "-o", "/dev/random", "-f")


def _invoker(runner, spawner, entropy=ENTROPY):
    from cqcrypto.crypto.decrypt import DecryptInvoker

    layout = CryptoLayout(cache_root=Path("/var/chef/cache"))
    return layout, DecryptInvoker(layout=layout, java="java", entropy_command=entropy, runner=runner, spawn=spawner)


def _exits_with(code: int, stdout: str = "", stderr: str = ""):
    return lambda argv, cwd: result(argv, code, stdout=stdout, stderr=stderr)


class TestDecryptInvoker(unittest.TestCase):
    def test_success_returns_trimmed_stdout(self) -> None:
        from cqcrypto.infra.models import Success

        runner = FakeRunner(_exits_with(0, stdout="  s3cr3t value \n"))
        spawner = FakeSpawner()
        layout, inv = _invoker(runner, spawner)

        outcome = inv.decrypt(HANDLE, "{abc123}")

        self.assertIsInstance(outcome, Success)
        self.assertEqual(outcome.value(), "s3cr3t value")
        argv, cwd = runner.calls[0]
        self.assertEqual(argv, ["java", "-cp", layout.classpath, "Decrypt", HANDLE, "{abc123}"])
        self.assertEqual(cwd, layout.root)

    def test_exit_code_mapping(self) -> None:
        from cqcrypto.infra.errors import DecryptFatalError
        from cqcrypto.infra.models import FatalFailure, RecoverableFailure

        expected_reasons = {
            1: "wrong number of arguments",
            2: "master key unreadable",
            4: "cipher initialization failed",
            5: "master key file missing",
        }
        for code, reason in expected_reasons.items():
            _, inv = _invoker(FakeRunner(_exits_with(code, stderr="boom")), FakeSpawner())
            outcome = inv.decrypt(HANDLE, "{abc}")
            self.assertIsInstance(outcome, FatalFailure, code)
            self.assertEqual(outcome.reason, reason)
            self.assertEqual(outcome.exit_code, code)
            with self.assertRaises(DecryptFatalError) as ctx:
                outcome.value()
            self.assertEqual(ctx.exception.exit_code, code)

        _, inv = _invoker(FakeRunner(_exits_with(3)), FakeSpawner())
        with self.assertLogs("cqcrypto.crypto.decrypt", level="ERROR"):
            outcome = inv.decrypt(HANDLE, "{abc}")
        self.assertIsInstance(outcome, RecoverableFailure)
        self.assertIsNone(outcome.value())

    def test_unexpected_exit_code_is_fatal(self) -> None:
        from cqcrypto.infra.models import FatalFailure

        _, inv = _invoker(FakeRunner(_exits_with(137)), FakeSpawner())
        outcome = inv.decrypt(HANDLE, "{abc}")
        self.assertIsInstance(outcome, FatalFailure)
        self.assertIn("137", outcome.reason)

    def test_entropy_feeder_is_stopped_on_every_outcome(self) -> None:
        for code in (0, 1, 2, 3, 4, 5):
            spawner = FakeSpawner()
            _, inv = _invoker(FakeRunner(_exits_with(code)), spawner)
            inv.decrypt(HANDLE, "{abc}")

            self.assertEqual(spawner.argvs, [list(ENTROPY)])
            self.assertEqual(spawner.spawned[0].signals, [signal.SIGINT])

    def test_helper_launch_failure_is_fatal_and_feeder_stopped(self) -> None:
        from cqcrypto.infra.models import FatalFailure

        spawner = FakeSpawner()
        runner = FakeRunner(lambda argv, cwd: FileNotFoundError(2, "No such file or directory", "java"))
        _, inv = _invoker(runner, spawner)

        outcome = inv.decrypt(HANDLE, "{abc}")

        self.assertIsInstance(outcome, FatalFailure)
        self.assertIsNone(outcome.exit_code)
        self.assertEqual(spawner.spawned[0].signals, [signal.SIGINT])

    def test_unexpected_exception_still_stops_feeder(self) -> None:
        spawner = FakeSpawner()
        runner = FakeRunner(lambda argv, cwd: KeyboardInterrupt())
        _, inv = _invoker(runner, spawner)

        with self.assertRaises(KeyboardInterrupt):
            inv.decrypt(HANDLE, "{abc}")
        self.assertEqual(spawner.spawned[0].signals, [signal.SIGINT])

    def test_feeder_launch_failure_is_fatal(self) -> None:
        from cqcrypto.infra.models import FatalFailure

        runner = FakeRunner()
        spawner = FakeSpawner(fail=FileNotFoundError(2, "No such file or directory", "rngd"))
        _, inv = _invoker(runner, spawner)

        outcome = inv.decrypt(HANDLE, "{abc}")
        self.assertIsInstance(outcome, FatalFailure)
        self.assertEqual(runner.calls, [])

    def test_feeder_ignoring_sigint_is_killed(self) -> None:
        spawner = FakeSpawner(ignore_sigint=True)
        _, inv = _invoker(FakeRunner(_exits_with(0, stdout="x")), spawner)
        inv.decrypt(HANDLE, "{abc}")
        self.assertTrue(spawner.spawned[0].killed)

    def test_no_feeder_when_entropy_command_empty(self) -> None:
        from cqcrypto.infra.models import Success

        spawner = FakeSpawner()
        _, inv = _invoker(FakeRunner(_exits_with(0, stdout="x")), spawner, entropy=())
        self.assertIsInstance(inv.decrypt(HANDLE, "{abc}"), Success)
        self.assertEqual(spawner.argvs, [])

    def test_recoverable_failure_does_not_poison_session(self) -> None:
        def responder(argv, cwd):
            if argv[-1] == "deadbeef":
                return result(argv, 3, stderr="javax.crypto.BadPaddingException")
            return result(argv, 0, stdout="admin\n")

        _, inv = _invoker(FakeRunner(responder), FakeSpawner())

        with self.assertLogs("cqcrypto.crypto.decrypt", level="ERROR"):
            self.assertEqual(inv.decrypt_many(HANDLE, ["deadbeef", "{c0ffee}"]), [None, "admin"])

    def test_decrypt_many_stops_at_fatal(self) -> None:
        from cqcrypto.infra.errors import DecryptFatalError

        def responder(argv, cwd):
            return result(argv, 5) if argv[-1] == "{second}" else result(argv, 0, stdout="ok")

        runner = FakeRunner(responder)
        _, inv = _invoker(runner, FakeSpawner())

        with self.assertRaises(DecryptFatalError) as ctx:
            inv.decrypt_many(HANDLE, ["{first}", "{second}", "{third}"])
        self.assertIn("master key file missing", str(ctx.exception))
        self.assertEqual(len(runner.calls), 2)


class TestDecryptInvokerProcess(unittest.TestCase):
    def test_undecodable_helper_output_still_yields_outcome(self) -> None:
        from cqcrypto.crypto.decrypt import DecryptInvoker
        from cqcrypto.infra.models import Success

        with tempfile.TemporaryDirectory() as td:
            layout = CryptoLayout(cache_root=Path(td))
            layout.root.mkdir(parents=True)
            helper = Path(td) / "fake-java"
            helper.write_text(
                f"#!{sys.executable}\nimport sys\nsys.stdout.buffer.write(b\"p\\xe9ss\\n\")\n",
                encoding="utf-8",
            )
            os.chmod(helper, 0o755)

            outcome = DecryptInvoker(layout=layout, java=str(helper)).decrypt(HANDLE, "{abc}")

            self.assertIsInstance(outcome, Success)
            self.assertEqual(len(outcome.value()), 4)


if __name__ == "__main__":
    unittest.main()
