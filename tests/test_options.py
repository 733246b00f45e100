import io
import pathlib
import tempfile
import unittest as ut
from unittest import mock

from gcsvfs.storage.clients import MissingCredentialError
from gcsvfs.storage.options import GCSFileSystemOptions


class _DictConfig:
    """Answers as_str()/as_int() from a nested dict, like zirconium does for a TOML file."""

    def __init__(self, values: dict):
        self.values = values

    def _get(self, keys, default=None):
        current = self.values
        for key in keys:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    def as_str(self, keys, default=None):
        value = self._get(keys, default)
        return default if value is None else str(value)

    def as_int(self, keys, default=None):
        value = self._get(keys, default)
        return default if value is None else int(value)


class TestOptions(ut.TestCase):

    def test_key_stream_types(self):
        for key in (b"{}", bytearray(b"{}"), memoryview(b"{}"), "{}", io.BytesIO(b"{}")):
            with self.subTest(key=key.__class__.__name__):
                self.assertEqual(GCSFileSystemOptions(2, key).key_stream, b"{}")

    def test_bad_key_stream(self):
        with self.assertRaises(TypeError):
            GCSFileSystemOptions(2, 12)

    def test_equal_options_are_interchangeable(self):
        a = GCSFileSystemOptions(2, io.BytesIO(b"{}"), "storage.example", "key")
        b = GCSFileSystemOptions(2, b"{}", "storage.example", "key")
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, GCSFileSystemOptions(2, b"{}", "storage.example", "other-key"))

    def test_key_not_in_repr(self):
        self.assertNotIn("secret", repr(GCSFileSystemOptions(2, b"secret")))

    def test_bind(self):
        options = GCSFileSystemOptions(2, b"{}", "storage.example")
        with mock.patch("gcsvfs.storage.options.select_client") as select:
            bound = options.bind()
        select.assert_called_once_with(2, b"{}", "storage.example")
        self.assertIs(bound, select.return_value)


class TestOptionsFromConfig(ut.TestCase):

    def test_empty(self):
        options = GCSFileSystemOptions.from_config(_DictConfig({}), "bucket")
        self.assertEqual(options, GCSFileSystemOptions())

    def test_general_settings(self):
        config = _DictConfig({"gcs": {"client_type": 1, "hostname": "storage.example", "cmk_id": "key"}})
        options = GCSFileSystemOptions.from_config(config, "bucket")
        self.assertEqual(options.client_type, 1)
        self.assertEqual(options.hostname, "storage.example")
        self.assertEqual(options.cmk_id, "key")
        self.assertIsNone(options.key_stream)

    def test_bucket_settings(self):
        config = _DictConfig({"gcs": {
            "client_type": 1,
            "cmk_id": "key",
            "buckets": {"special": {"client_type": 3, "cmk_id": "special-key"}}
        }})
        special = GCSFileSystemOptions.from_config(config, "special")
        self.assertEqual(special.client_type, 3)
        self.assertEqual(special.cmk_id, "special-key")
        other = GCSFileSystemOptions.from_config(config, "other")
        self.assertEqual(other.client_type, 1)
        self.assertEqual(other.cmk_id, "key")

    def test_key_file(self):
        with tempfile.TemporaryDirectory() as td:
            key_file = pathlib.Path(td) / "key.json"
            key_file.write_bytes(b'{"type": "service_account"}')
            config = _DictConfig({"gcs": {"client_type": 2, "key_file": str(key_file)}})
            options = GCSFileSystemOptions.from_config(config, "bucket")
        self.assertEqual(options.key_stream, b'{"type": "service_account"}')

    def test_missing_key_file(self):
        with tempfile.TemporaryDirectory() as td:
            config = _DictConfig({"gcs": {"client_type": 2, "key_file": str(pathlib.Path(td) / "nope.json")}})
            with self.assertRaises(MissingCredentialError):
                GCSFileSystemOptions.from_config(config, "bucket")
