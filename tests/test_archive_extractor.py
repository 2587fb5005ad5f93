from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from _testutil import FakeRunner, ensure_repo_on_path, result, write_zip


class TestZipfileExtractor(unittest.TestCase):
    def test_extracts_matching_entries_flattened(self) -> None:
        ensure_repo_on_path()

        from cqcrypto.archive.extractor import ZipfileExtractor

        with tempfile.TemporaryDirectory() as td:
            td_path = Path(td)
            archive = write_zip(
                td_path / "a.jar",
                {
                    "META-INF/lib/one.jar": b"1",
                    "META-INF/lib/nested/two.jar": b"2",
                    "META-INF/MANIFEST.MF": b"m",
                },
            )
            dest = td_path / "out"
            ZipfileExtractor().extract(archive, "META-INF/lib/*", dest)

            self.assertEqual(sorted(p.name for p in dest.iterdir()), ["one.jar", "two.jar"])
            self.assertEqual((dest / "two.jar").read_bytes(), b"2")

    def test_overwrites_existing_files(self) -> None:
        ensure_repo_on_path()

        from cqcrypto.archive.extractor import ZipfileExtractor

        with tempfile.TemporaryDirectory() as td:
            td_path = Path(td)
            archive = write_zip(td_path / "a.jar", {"lib/one.jar": b"new"})
            dest = td_path / "out"
            dest.mkdir()
            (dest / "one.jar").write_bytes(b"old")

            ZipfileExtractor().extract(archive, "lib/*", dest)
            self.assertEqual((dest / "one.jar").read_bytes(), b"new")

    def test_no_match_and_bad_archive_are_fatal(self) -> None:
        ensure_repo_on_path()

        from cqcrypto.archive.extractor import ZipfileExtractor
        from cqcrypto.infra.errors import ExtractionError

        with tempfile.TemporaryDirectory() as td:
            td_path = Path(td)
            archive = write_zip(td_path / "a.jar", {"lib/one.jar": b"1"})
            not_zip = td_path / "b.jar"
            not_zip.write_bytes(b"definitely not a zip")

            with self.assertRaises(ExtractionError) as ctx:
                ZipfileExtractor().extract(archive, "static/app/*", td_path / "out")
            self.assertIn("static/app/*", str(ctx.exception))

            with self.assertRaises(ExtractionError):
                ZipfileExtractor().extract(not_zip, "*", td_path / "out")

            with self.assertRaises(ExtractionError):
                ZipfileExtractor().extract(td_path / "missing.jar", "*", td_path / "out")


class TestUnzipExtractor(unittest.TestCase):
    def test_invokes_unzip_with_overwrite_and_junk_paths(self) -> None:
        ensure_repo_on_path()

        from cqcrypto.archive.extractor import UnzipExtractor

        runner = FakeRunner()
        UnzipExtractor(unzip="/usr/bin/unzip", runner=runner).extract(Path("/c/a.jar"), "static/app/*", Path("/c/tmp"))

        argv, _ = runner.calls[0]
        self.assertEqual(argv, ["/usr/bin/unzip", "-o", "-b", "-j", "/c/a.jar", "static/app/*", "-d", "/c/tmp"])

    def test_non_zero_exit_carries_tool_output(self) -> None:
        ensure_repo_on_path()

        from cqcrypto.archive.extractor import UnzipExtractor
        from cqcrypto.infra.errors import ExtractionError, FatalError

        runner = FakeRunner(lambda argv, cwd: result(argv, 11, stdout="caution: filename not matched:  static/app/*"))
        with self.assertRaises(ExtractionError) as ctx:
            UnzipExtractor(runner=runner).extract(Path("a.jar"), "static/app/*", Path("out"))

        self.assertIsInstance(ctx.exception, FatalError)
        self.assertEqual(ctx.exception.returncode, 11)
        self.assertIn("filename not matched", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
