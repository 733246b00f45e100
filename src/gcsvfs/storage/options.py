from __future__ import annotations
import dataclasses
import pathlib
import typing as t

import zirconium as zr

from gcsvfs.util import Readable
from .clients import BoundClient, MissingCredentialError, select_client


@dataclasses.dataclass(frozen=True)
class GCSFileSystemOptions:
    """Options for one GCS file system.

        client_type: ClientType tag (required)
        key_stream: JSON key material (bytes or a readable binary stream), STORAGE_ACCOUNT only
        hostname: endpoint to use instead of the default one, STORAGE_ACCOUNT only
        cmk_id: customer-managed encryption key applied to every object created
    """

    client_type: t.Optional[int] = None
    key_stream: t.Optional[bytes] = dataclasses.field(default=None, repr=False)
    hostname: t.Optional[str] = None
    cmk_id: t.Optional[str] = None

    def __post_init__(self):
        key = self.key_stream
        if key is None or isinstance(key, bytes):
            return
        if isinstance(key, (bytearray, memoryview)):
            key = bytes(key)
        elif isinstance(key, str):
            key = key.encode("utf-8")
        elif isinstance(key, Readable):
            key = key.read()
        else:
            raise TypeError(f"Unsupported key stream type [{key.__class__.__name__}]")
        object.__setattr__(self, "key_stream", key)

    def bind(self) -> BoundClient:
        """Build the storage client these options describe."""
        return select_client(self.client_type, self.key_stream, self.hostname)

    @staticmethod
    def from_config(config: zr.ApplicationConfig, bucket: t.Optional[str] = None) -> GCSFileSystemOptions:
        """Build options from the [gcs] section of the configuration.

            Values in [gcs.buckets.BUCKET] take precedence over those in [gcs] for that bucket.
        """

        def _get(name: str, getter):
            if bucket:
                value = getter(("gcs", "buckets", bucket, name), default=None)
                if value is not None:
                    return value
            return getter(("gcs", name), default=None)

        key_stream = None
        key_file = _get("key_file", config.as_str)
        if key_file:
            key_path = pathlib.Path(key_file).expanduser()
            try:
                key_stream = key_path.read_bytes()
            except OSError as ex:
                raise MissingCredentialError(f"Could not read credential key file [{key_path}]") from ex
        return GCSFileSystemOptions(
            client_type=_get("client_type", config.as_int),
            key_stream=key_stream,
            hostname=_get("hostname", config.as_str),
            cmk_id=_get("cmk_id", config.as_str),
        )
