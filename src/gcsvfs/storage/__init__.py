"""
    Provides a hierarchical file system view of Google Cloud Storage buckets.

    In general, one should use the StorageController to get a handle to a file.
    The handle knows how to perform various operations on the file as appropriate,
    regardless of if it is in a bucket or on a local drive.

    GCS only stores objects with flat names. Folders are emulated: a path is a folder
    if any object name starts with it (followed by a separator), or if it was declared
    to be one. There is an ambiguity for a name like

    gcs://bucket/hello-world

    which could be an object or a folder. Handles resolve this by asking GCS, first for
    an object with that exact name and then for anything below it. Names ending with a
    separator (e.g. gcs://bucket/directory/) are always treated as folders without a call.

    Use `child()` to obtain a handle for a file in a folder and `subdir()` for a
    sub-folder.

    Copies between two handles reached with the same credentials are done by GCS itself.
    Any other copy (including from a local file) streams the content through this process.
"""
from .core import StorageController
from .base import BaseStorageHandle, StorageError
from .types import FileType, Capability
from .gcs import GCSFileHandle, GCSFileSystem
from .local import LocalHandle
from .options import GCSFileSystemOptions
from .clients import ClientType
from .transfer import CopyMode
