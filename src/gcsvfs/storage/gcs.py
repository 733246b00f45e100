"""Google Cloud Storage file system.

    GCS has no folders, only objects whose names contain separators. A path is
    therefore treated as:

    - a FILE if an object exists with exactly that name,
    - a FOLDER if listing the path (with a trailing separator) one level deep returns
      anything, or if the name was declared to be a folder (trailing separator),
    - IMAGINARY (not created yet) otherwise.

    The root of a bucket is always a FOLDER. Empty folders are represented by a
    zero-length marker object whose name ends with the separator.
"""
from __future__ import annotations
import dataclasses
import datetime
import functools
import mimetypes
import typing as t

import google.api_core.exceptions as gae
import google.auth.exceptions
import requests
import urllib3.exceptions
import zrlog
from google.cloud import storage

from gcsvfs.util import ConfigError, GCSVFSError
from .base import BaseStorageHandle, StorageError, COPY_BUFFER_SIZE, MalformedPathError, ObjectMissingError
from .clients import BoundClient
from .names import ResourceName, ROOT_KEY, PATH_DELIMITER, derive
from .options import GCSFileSystemOptions
from .selectors import FileSelector, SELECT_ALL
from .types import FileType, Capability
from . import transfer


CAPABILITIES = frozenset({
    Capability.GET_TYPE,
    Capability.READ_CONTENT,
    Capability.APPEND_CONTENT,
    Capability.URI,
    Capability.ATTRIBUTES,
    Capability.RANDOM_ACCESS_READ,
    Capability.DIRECTORY_READ_CONTENT,
    Capability.LIST_CHILDREN,
    Capability.LAST_MODIFIED,
    Capability.GET_LAST_MODIFIED,
    Capability.CREATE,
    Capability.DELETE,
})

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ContainerNotFoundError(ConfigError):

    def __init__(self, bucket: str):
        super().__init__(f"Bucket [{bucket}] does not exist", 3010)
        self.bucket = bucket


def wrap_gcs_errors(cb):

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except gae.GoogleAPICallError as ex:
            if isinstance(ex, (gae.Unauthorized, gae.Forbidden)):
                raise StorageError(f"GCS: Client authentication error: {ex.__class__.__name__}: {str(ex)}", 2003) from ex
            elif isinstance(ex, gae.NotFound):
                raise StorageError(f"GCS: Resource not found error: {ex.__class__.__name__}: {str(ex)}", 2004) from ex
            elif isinstance(ex, (gae.Conflict, gae.PreconditionFailed)):
                raise StorageError(f"GCS: Resource already exists error: {ex.__class__.__name__}: {str(ex)}", 2005) from ex
            elif isinstance(ex, (gae.TooManyRequests, gae.ServerError)):
                raise StorageError(f"GCS: Service unavailable: {ex.__class__.__name__}: {str(ex)}", 2006, True) from ex
            raise StorageError(f"GCS: {ex.__class__.__name__}: {str(ex)}", 2000) from ex
        except gae.GoogleAPIError as ex:
            raise StorageError(f"GCS: {ex.__class__.__name__}: {str(ex)}", 2000) from ex
        except google.auth.exceptions.GoogleAuthError as ex:
            raise StorageError(f"GCS: Client authentication error: {ex.__class__.__name__}: {str(ex)}", 2003, True) from ex
        except (requests.Timeout, urllib3.exceptions.ConnectTimeoutError) as ex:
            raise StorageError(f"GCS: Connection timeout error: {ex.__class__.__name__}: {str(ex)}", 2001, True) from ex
        except requests.ConnectionError as ex:
            raise StorageError(f"GCS: Connection error: {ex.__class__.__name__}: {str(ex)}", 2002, True) from ex

    return _inner


class GCSFileSystem:
    """A file system rooted at a single bucket, sharing one client between all of its handles."""

    capabilities = CAPABILITIES

    def __init__(self, root_name: ResourceName, options: GCSFileSystemOptions, client: BoundClient):
        self.root_name = dataclasses.replace(root_name, key=ROOT_KEY, declared_type=FileType.UNKNOWN)
        self.options = options
        self.client = client
        self._bucket = client.client.bucket(self.root_name.container)

    def __str__(self):
        return self.root_name.root_uri()

    def bucket(self) -> storage.Bucket:
        return self._bucket

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def resolve_file(self, name: t.Union[ResourceName, str]) -> GCSFileHandle:
        """Get a handle for a name (or a path relative to the bucket root) in this file system."""
        if isinstance(name, str):
            name = derive(self.root_name, name)
        elif name.container != self.root_name.container or name.scheme != self.root_name.scheme:
            raise MalformedPathError(name.uri(), f"not part of file system [{self}]")
        return GCSFileHandle(name, self)


class GCSFileHandle(BaseStorageHandle):
    """A file or folder in a GCS bucket.

        The handle keeps the object it was last attached to. A handle starts out detached;
        attaching looks up the object (which may not exist). Writes and copies attach the
        object they produced directly.
    """

    def __init__(self, name: ResourceName, file_system: GCSFileSystem, blob: t.Optional[storage.Blob] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._resource_name = name
        self._fs = file_system
        self._blob = blob
        self._attached = blob is not None
        self._log = zrlog.get_logger("gcsvfs.storage.gcs")

    @property
    def resource_name(self) -> ResourceName:
        return self._resource_name

    @property
    def file_system(self) -> GCSFileSystem:
        return self._fs

    def path(self) -> str:
        return self._resource_name.uri()

    def _name(self) -> str:
        return self._resource_name.base_name()

    def credential_identity(self) -> t.Optional[t.Hashable]:
        return self._fs.client.credential_identity

    def _check_bucket(self) -> storage.Bucket:
        bucket = self._fs.bucket()
        if not bucket.exists():
            raise ContainerNotFoundError(self._resource_name.container)
        return bucket

    def _object_key(self) -> str:
        # Folders are attached to their marker object, if any
        if self._resource_name.declared_type == FileType.FOLDER or self._cached_properties.get('file_type') == FileType.FOLDER:
            return self._strip_leading(self._resource_name.listing_prefix())
        return self._resource_name.object_key()

    @staticmethod
    def _strip_leading(key: str) -> str:
        if key != ROOT_KEY and key.startswith(PATH_DELIMITER):
            return key[1:]
        return key

    @wrap_gcs_errors
    def attach(self) -> t.Optional[storage.Blob]:
        """Look up the object for this handle, replacing the one attached before (if any)."""
        bucket = self._check_bucket()
        key = self._object_key()
        self._blob = None if key == ROOT_KEY else bucket.get_blob(key)
        self._attached = True
        return self._blob

    def attach_if_required(self) -> t.Optional[storage.Blob]:
        if not self._attached:
            self.attach()
        return self._blob

    def detach(self):
        self._blob = None
        self._attached = False
        self.clear_cache()

    def is_attached(self) -> bool:
        return self._attached

    def refresh(self):
        """Re-attach and re-resolve the handle, logging instead of raising on failure.

            Only caches are affected, so a failure here is corrected the next time they are used.
        """
        try:
            self.file_type(clear_cache=True)
            self.attach()
        except GCSVFSError:
            self._log.exception(f"Failed to refresh [{self}]")

    @wrap_gcs_errors
    def _file_type(self) -> FileType:
        if self._resource_name.declared_type == FileType.FOLDER:
            return FileType.FOLDER
        bucket = self._check_bucket()
        if self._resource_name.is_root():
            return FileType.FOLDER
        blob = bucket.get_blob(self._resource_name.object_key())
        if blob is not None:
            self._log.debug(f"File [{self}] exists in bucket")
            self._blob = blob
            self._attached = True
            return FileType.FILE
        prefix = self._strip_leading(self._resource_name.listing_prefix())
        self._log.debug(f"File [{self}] does not exist, listing [{prefix}] to check for a directory")
        blobs, prefixes = self._list_prefix(prefix, max_results=1)
        if blobs or prefixes:
            return FileType.FOLDER
        return FileType.IMAGINARY

    def _list_prefix(self, prefix: str, max_results: t.Optional[int] = None) -> tuple[list[storage.Blob], set[str]]:
        """List one level below the prefix, returning the objects and the sub-prefixes."""
        iterator = self._fs.client.client.list_blobs(
            self._fs.bucket(),
            prefix=prefix or None,
            delimiter=PATH_DELIMITER,
            max_results=max_results
        )
        blobs = list(iterator)
        return blobs, set(iterator.prefixes)

    @wrap_gcs_errors
    def _list_entries(self) -> list[tuple[str, t.Optional[storage.Blob]]]:
        self._log.debug(f"Listing directory below [{self}]")
        self._check_bucket()
        prefix = self._strip_leading(self._resource_name.listing_prefix())
        if prefix == ROOT_KEY:
            prefix = ""
        blobs, prefixes = self._list_prefix(prefix)
        entries = [(blob.name[len(prefix):], blob) for blob in blobs if blob.name != prefix]
        entries.extend((sub_prefix[len(prefix):], None) for sub_prefix in sorted(prefixes) if sub_prefix != prefix)
        return entries

    def _list_child_names(self) -> list[str]:
        return [name for name, _ in self._list_entries()]

    def children(self) -> list[GCSFileHandle]:
        if not self.is_dir():
            return super().children()
        children = []
        for name, blob in self._list_entries():
            if blob is None:
                children.append(self.child(name, True))
            else:
                child = GCSFileHandle(derive(self._resource_name, name, FileType.FILE), self._fs, blob)
                child._set_cache('file_type', FileType.FILE)
                children.append(child)
        return children

    def child(self, sub_path: str, as_dir: bool = False) -> GCSFileHandle:
        return self._fs.resolve_file(derive(
            self._resource_name,
            sub_path.strip(PATH_DELIMITER),
            FileType.FOLDER if as_dir else None
        ))

    def resolve(self, relative_name: str, declared_type: t.Optional[FileType] = None) -> GCSFileHandle:
        """Get a handle relative to this one; '.' returns this handle."""
        if relative_name in ("", "."):
            return self
        return self._fs.resolve_file(derive(self._resource_name, relative_name, declared_type))

    def relative_name(self, descendant: BaseStorageHandle) -> str:
        if not isinstance(descendant, GCSFileHandle):
            raise MalformedPathError(descendant.path(), f"not a descendant of [{self}]")
        return self._resource_name.relative_name(descendant.resource_name)

    def _content_type(self) -> str:
        content_type, _ = mimetypes.guess_type(self._resource_name.base_name())
        return content_type or DEFAULT_CONTENT_TYPE

    def _create_object(self, marker: bool = False) -> storage.Blob:
        """Create an empty object (a folder marker if requested) and attach it when it is this handle's object."""
        bucket = self._check_bucket()
        key = self._strip_leading(self._resource_name.listing_prefix() if marker else self._resource_name.object_key())
        blob = bucket.blob(key, kms_key_name=self._fs.options.cmk_id)
        blob.upload_from_string(b"", content_type=self._content_type())
        if key == self._object_key():
            self._blob = blob
            self._attached = True
        else:
            self._blob = None
            self._attached = False
        return blob

    @wrap_gcs_errors
    def create_folder(self):
        """Create a marker object so that the folder exists even when it is empty."""
        if self._resource_name.is_root():
            return
        self._create_object(marker=True)
        self._set_cache('file_type', FileType.FOLDER)

    @wrap_gcs_errors
    def open_read(self) -> t.BinaryIO:
        blob = self.attach_if_required()
        if blob is None:
            raise ObjectMissingError(self.path())
        return blob.open("rb", chunk_size=COPY_BUFFER_SIZE)

    @wrap_gcs_errors
    def open_write(self, append: bool = False) -> t.BinaryIO:
        """Create the object and open a stream to write its content.

            Objects cannot be appended to, so append is ignored and the content is replaced.
        """
        if self._resource_name.is_root():
            raise StorageError(f"Cannot write to the root of bucket [{self._resource_name.container}]", 1022)
        if append:
            self._log.debug(f"Append requested on [{self}], content will be replaced")
        marker = self._resource_name.declared_type == FileType.FOLDER
        if not marker:
            # the new object replaces whatever was resolved before
            self.clear_cache()
        blob = self._create_object(marker=marker)
        if not marker:
            self._set_cache('file_type', FileType.FILE)
        return blob.open("wb", chunk_size=COPY_BUFFER_SIZE, ignore_flush=True)

    def _complete_upload(self):
        self.refresh()

    def _default_buffer_size(self):
        return COPY_BUFFER_SIZE

    @wrap_gcs_errors
    def remove(self):
        blob = self.attach()
        if blob is not None:
            self._log.debug(f"Deleting object [{blob.name}]")
            blob.delete()
        self.clear_cache()
        self._blob = None

    def _attached_blob(self, clear_cache: bool = False) -> t.Optional[storage.Blob]:
        if clear_cache:
            return self.attach()
        return self.attach_if_required()

    def size(self, clear_cache: bool = False) -> t.Optional[int]:
        blob = self._attached_blob(clear_cache)
        return None if blob is None else blob.size

    def modified_datetime(self, clear_cache: bool = False) -> t.Optional[datetime.datetime]:
        blob = self._attached_blob(clear_cache)
        return None if blob is None else blob.updated

    def set_modified_datetime(self, value: datetime.datetime) -> bool:
        # The update time is managed by GCS, accept and ignore
        return True

    def get_metadata(self, clear_cache: bool = False) -> dict[str, str]:
        blob = self._attached_blob(clear_cache)
        return {} if blob is None or blob.metadata is None else dict(blob.metadata)

    @wrap_gcs_errors
    def signed_url(self, duration_seconds: int) -> t.Optional[str]:
        """Generate a URL that gives direct read access to the object for the given number of seconds."""
        blob = self.attach_if_required()
        if blob is None:
            return None
        return blob.generate_signed_url(
            expiration=datetime.timedelta(seconds=duration_seconds),
            method="GET",
            version="v4"
        )

    @wrap_gcs_errors
    def rewrite_from(self, source: GCSFileHandle) -> storage.Blob:
        """Copy the source object onto this handle without the content leaving GCS."""
        src_blob = source.attach_if_required()
        if src_blob is None:
            raise ObjectMissingError(source.path())
        dest_blob = self._fs.bucket().blob(self._resource_name.object_key(), kms_key_name=self._fs.options.cmk_id)
        token, _, _ = dest_blob.rewrite(src_blob)
        while token is not None:
            token, _, _ = dest_blob.rewrite(src_blob, token=token)
        return dest_blob

    def accept_copy_result(self, blob: storage.Blob):
        """Attach the object produced by a copy, re-resolving the type on a best-effort basis."""
        try:
            self.file_type(clear_cache=True)
        except GCSVFSError:
            self._log.exception(f"Could not refresh the type of [{self}] after copy")
        self._blob = blob
        self._attached = True

    def copy_from(self,
                  source: BaseStorageHandle,
                  selector: FileSelector = SELECT_ALL,
                  progress: t.Optional[t.Callable[[int, int, int], None]] = None) -> int:
        """Copy the source (and, depending on the selector, its descendants) onto this handle.

            Returns the number of files and folders copied.
        """
        return transfer.copy_from(self, source, selector, progress)

    @staticmethod
    def supports(file_path: str) -> bool:
        return file_path.lower().startswith(("gcs://", "gs://"))
