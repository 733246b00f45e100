"""Copying files and folder trees onto GCS.

    When the source and the destination are reached with the same credentials, objects
    are copied by GCS itself and no content passes through this process. Otherwise
    (different credentials, or a source that is not in GCS) the content of each file is
    streamed from the source to the destination.
"""
from __future__ import annotations
import enum
import typing as t

import google.api_core.exceptions as gae
import google.auth.exceptions
import zrlog
from google.cloud.storage import exceptions as gcs_exceptions

from gcsvfs.util import copy_stream
from .base import BaseStorageHandle, StorageError, CopyFailedError, SourceMissingError, COPY_BUFFER_SIZE
from .selectors import FileSelector, SELECT_ALL

if t.TYPE_CHECKING:
    from .gcs import GCSFileHandle


class CopyMode(enum.Enum):

    SERVER_SIDE = "server_side"
    STREAMED = "streamed"


def copy_mode(source: BaseStorageHandle, destination: BaseStorageHandle) -> CopyMode:
    """Decide how to copy from source to destination, based on their credentials."""
    source_identity = source.credential_identity()
    destination_identity = destination.credential_identity()
    if source_identity is not None and destination_identity is not None and source_identity == destination_identity:
        return CopyMode.SERVER_SIDE
    return CopyMode.STREAMED


# Raised by the upload and download streams of google.cloud.storage, which are used outside of wrap_gcs_errors
COPY_ERRORS = (
    OSError,
    StorageError,
    gae.GoogleAPIError,
    gcs_exceptions.InvalidResponse,
    gcs_exceptions.DataCorruption,
    google.auth.exceptions.GoogleAuthError,
)


def copy_from(destination: GCSFileHandle,
              source: BaseStorageHandle,
              selector: FileSelector = SELECT_ALL,
              progress: t.Optional[t.Callable[[int, int, int], None]] = None) -> int:
    """Copy the files the selector picks from below source to the same relative paths below destination.

        A destination whose type differs from its source (e.g. a folder where a file will go) is
        removed first. Files copied before a failure are left in place. A file is never copied
        onto the root of a bucket.
    """
    log = zrlog.get_logger("gcsvfs.storage.copy")
    if not source.exists(clear_cache=True):
        raise SourceMissingError(source.path())
    mode = copy_mode(source, destination)
    files = source.find_files(selector)
    log.info(f"Copying {len(files)} entries from [{source}] to [{destination}] ({mode.value})")
    for src_file in files:
        dest_file = destination.resolve(source.relative_name(src_file))
        src_type = src_file.file_type()
        if src_type.has_content() and dest_file.resource_name.is_root():
            log.error(f"Cannot copy file [{src_file}] onto the root of a bucket [{dest_file}]")
            raise CopyFailedError(src_file.path(), dest_file.path())
        try:
            if dest_file.exists(clear_cache=True) and dest_file.file_type() != src_type:
                # TODO: make the overwrite policy configurable instead of always replacing
                log.debug(f"Removing [{dest_file}] before copy, it is a {dest_file.file_type().value}")
                dest_file.remove_tree()
            if src_type.has_content():
                if mode == CopyMode.SERVER_SIDE:
                    _server_side_copy(src_file, dest_file)
                else:
                    _stream_copy(src_file, dest_file, progress)
            elif src_type.has_children():
                dest_file.create_folder()
        except COPY_ERRORS as ex:
            raise CopyFailedError(src_file.path(), dest_file.path(), getattr(ex, "is_recoverable", False)) from ex
    return len(files)


def _server_side_copy(src_file: GCSFileHandle, dest_file: GCSFileHandle):
    blob = dest_file.rewrite_from(src_file)
    dest_file.accept_copy_result(blob)


def _stream_copy(src_file: BaseStorageHandle,
                 dest_file: GCSFileHandle,
                 progress: t.Optional[t.Callable[[int, int, int], None]] = None):
    stream_size = src_file.size()
    with src_file.open_read() as src:
        dest = dest_file.open_write()
        try:
            # the upload is abandoned, not finalised, if the block raises
            with dest:
                copy_stream(src, dest, COPY_BUFFER_SIZE, -1 if stream_size is None else stream_size, progress)
        except COPY_ERRORS:
            _discard_placeholder(dest_file)
            raise
    # picks up the size and update time of the new object
    dest_file.refresh()


def _discard_placeholder(dest_file: GCSFileHandle):
    """Remove the empty object open_write() created for an upload that did not complete."""
    try:
        dest_file.remove()
    except StorageError:
        zrlog.get_logger("gcsvfs.storage.copy").exception(f"Could not remove the incomplete object [{dest_file}]")
