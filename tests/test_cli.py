import pathlib
import tempfile
import unittest as ut
import warnings
from unittest import mock

from click.testing import CliRunner

from gcsvfs.cli.cli import main
from gcsvfs.storage import StorageController
from gcsvfs.storage.local import LocalHandle

from tests.fake_gcs import FakeServer, build_file_system


class TestCommandLine(ut.TestCase):

    def setUp(self):
        self.server = FakeServer("bucket")
        self.server.put("bucket", "docs/a.txt", b"hello")
        self.server.put("bucket", "docs/b/c.txt", b"c")
        self.fs = build_file_system(self.server)
        patches = [
            mock.patch("gcsvfs.cli.cli.init_gcsvfs"),
            mock.patch.object(StorageController, "get_handle", autospec=True, side_effect=self._get_handle),
        ]
        for patch in patches:
            patch.start()
            self.addCleanup(patch.stop)
        self.runner = CliRunner()

    def _get_handle(self, controller, file_path, options=None):
        if isinstance(file_path, str) and file_path.startswith("gcs://bucket"):
            return self.fs.resolve_file(file_path[len("gcs://bucket"):])
        return LocalHandle.build(str(file_path))

    def test_type(self):
        result = self.runner.invoke(main, ["type", "gcs://bucket/docs"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.strip(), "folder")

    def test_ls(self):
        result = self.runner.invoke(main, ["ls", "gcs://bucket/docs"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.splitlines(), ["a.txt", "b/"])

    def test_cat(self):
        result = self.runner.invoke(main, ["cat", "gcs://bucket/docs/a.txt"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.stdout_bytes, b"hello")

    def test_cat_binary_output(self):
        self.server.put("bucket", "docs/raw.bin", b"\x00\xff\r\n")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = self.runner.invoke(main, ["cat", "gcs://bucket/docs/raw.bin"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.stdout_bytes, b"\x00\xff\r\n")
        self.assertFalse([w for w in caught if "get_binary_stream" in str(w.message)])

    def test_cat_missing(self):
        result = self.runner.invoke(main, ["cat", "gcs://bucket/nothing.txt"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ObjectMissingError:", result.output)

    def test_ls_file(self):
        result = self.runner.invoke(main, ["ls", "gcs://bucket/docs/a.txt"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("NotAFolderError:", result.output)

    def test_cp_upload(self):
        with tempfile.TemporaryDirectory() as td:
            local_file = pathlib.Path(td) / "report.tmp"
            local_file.write_bytes(b"testing...")
            result = self.runner.invoke(main, ["cp", str(local_file), "gcs://bucket/report.tmp"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.server.get("bucket", "report.tmp")["data"], b"testing...")

    def test_cp_recursive(self):
        result = self.runner.invoke(main, ["cp", "--recursive", "gcs://bucket/docs", "gcs://bucket/copy"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Copied 4 entries", result.output)
        self.assertEqual(self.server.get("bucket", "copy/b/c.txt")["data"], b"c")

    def test_cp_download(self):
        with tempfile.TemporaryDirectory() as td:
            target = pathlib.Path(td) / "a.txt"
            result = self.runner.invoke(main, ["cp", "gcs://bucket/docs/a.txt", str(target)])
            self.assertEqual(result.exit_code, 0)
            self.assertEqual(target.read_bytes(), b"hello")

    def test_rm(self):
        result = self.runner.invoke(main, ["rm", "gcs://bucket/docs/a.txt"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.server.names("bucket"), ["docs/b/c.txt"])

    def test_rm_recursive(self):
        result = self.runner.invoke(main, ["rm", "--recursive", "gcs://bucket/docs"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.server.names("bucket"), [])

    def test_sign(self):
        result = self.runner.invoke(main, ["sign", "--duration", "120", "gcs://bucket/docs/a.txt"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("expires=120", result.output)

    def test_sign_missing(self):
        result = self.runner.invoke(main, ["sign", "gcs://bucket/nothing.txt"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("StorageError:", result.output)
