from __future__ import annotations
import datetime
import functools
import pathlib
import typing as t

from gcsvfs.util import GCSVFSError, copy_stream
from .selectors import FileSelector, FileSelectInfo, SELECT_ALL
from .types import FileType


# 32 MiB, keeps round-trips down on large objects
COPY_BUFFER_SIZE = 33554432


class StorageError(GCSVFSError):
    """Error class specifically for storage errors."""

    def __init__(self, msg, code, is_recoverable: bool = False):
        super().__init__(msg, "STORAGE", code, is_recoverable=is_recoverable)


class MalformedPathError(StorageError):

    def __init__(self, path: str, reason: str):
        super().__init__(f"Malformed path [{path}]: {reason}", 1010)
        self.path = path


class NotAFolderError(StorageError):

    def __init__(self, path: str):
        super().__init__(f"Path [{path}] is not a folder", 1020)
        self.path = path


class ObjectMissingError(StorageError):

    def __init__(self, path: str):
        super().__init__(f"No object exists at [{path}]", 1021)
        self.path = path


class SourceMissingError(StorageError):

    def __init__(self, path: str):
        super().__init__(f"Cannot copy missing file [{path}]", 1030)
        self.path = path


class CopyFailedError(StorageError):

    def __init__(self, source: str, destination: str, is_recoverable: bool = False):
        super().__init__(f"Could not copy [{source}] to [{destination}]", 1031, is_recoverable)
        self.source = source
        self.destination = destination


class RenameNotSupportedError(StorageError):

    def __init__(self, source: str, destination: str):
        super().__init__(f"Cannot rename [{source}] to [{destination}], copy and delete instead", 1040)


def local_file_error_wrap(cb):
    """Converts typical local file-system errors into appropriate StorageErrors with recoverable set properly."""

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except StorageError:
            raise
        except FileNotFoundError as ex:
            raise StorageError(f"Local file not found", 1002) from ex
        except PermissionError as ex:
            raise StorageError(f"Access to local file denied", 1003, True) from ex
        except IsADirectoryError as ex:
            raise StorageError(f"Local file is a directory", 1004) from ex
        except NotADirectoryError as ex:
            raise StorageError(f"Local directory is not a directory", 1005) from ex
        except OSError as ex:
            raise StorageError(f"Exception processing local file: {ex.__class__.__name__}: {str(ex)}", 1006) from ex

    return _inner


class BaseStorageHandle:

    def __init__(self, *args, **kwargs):
        self._cached_properties = {}

    def __str__(self):
        return self.path()

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.path()}>"

    def clear_cache(self):
        """Clear the local cache of all values."""
        self._cached_properties = {}

    def _with_cache(self, key: str, callback: callable, *args, clear_cache: bool = False, **kwargs):
        if clear_cache or key not in self._cached_properties:
            self._cached_properties[key] = callback(*args, **kwargs)
        return self._cached_properties[key]

    def _set_cache(self, key: str, value):
        self._cached_properties[key] = value

    def path(self) -> str:
        """Get a string representation of this path that could be used to rebuild it."""
        raise NotImplementedError

    def name(self) -> str:
        """Get the name of the handle."""
        return self._with_cache('name', self._name)

    def _name(self) -> str:
        raise NotImplementedError

    def file_type(self, clear_cache: bool = False) -> FileType:
        """Determine if the handle is a file, a folder or doesn't exist (imaginary)."""
        return self._with_cache('file_type', self._file_type, clear_cache=clear_cache)

    def _file_type(self) -> FileType:
        raise NotImplementedError

    def exists(self, clear_cache: bool = False) -> bool:
        """Check if the handle exists."""
        return self.file_type(clear_cache) != FileType.IMAGINARY

    def is_dir(self, clear_cache: bool = False) -> bool:
        """Check if the handle represents a directory."""
        return self.file_type(clear_cache) == FileType.FOLDER

    def is_file(self, clear_cache: bool = False) -> bool:
        return self.file_type(clear_cache) == FileType.FILE

    def child(self, sub_path: str, as_dir: bool = False) -> BaseStorageHandle:
        """Create a child of the current directory."""
        raise NotImplementedError

    def subdir(self, sub_path: str) -> BaseStorageHandle:
        """Create a child of the current directory, as a directory."""
        return self.child(sub_path, True)

    def relative_name(self, descendant: BaseStorageHandle) -> str:
        """Get the path of descendant relative to this handle ('.' for the handle itself)."""
        raise NotImplementedError

    def list_children(self) -> list[str]:
        """List the names of the immediate children of this folder.

            Sub-folders are returned with a trailing slash when the backend reports them that way.
        """
        if not self.is_dir():
            raise NotAFolderError(self.path())
        return self._list_child_names()

    def _list_child_names(self) -> list[str]:
        raise NotImplementedError

    def children(self) -> list[BaseStorageHandle]:
        """Build handles for the immediate children of this folder."""
        return [self.child(name, name.endswith('/')) for name in self.list_children()]

    def find_files(self, selector: FileSelector = SELECT_ALL, depth_first: bool = False) -> list[BaseStorageHandle]:
        """Find the files below (and including) this handle that the selector chooses.

            By default, folders are listed before their contents. With depth_first, the contents
            of a folder come before the folder itself (e.g. for removing a tree).
        """
        selected = []
        if self.exists():
            self._traverse(FileSelectInfo(self, self, 0), selector, depth_first, selected)
        return selected

    @staticmethod
    def _traverse(info: FileSelectInfo, selector: FileSelector, depth_first: bool, selected: list):
        file = info.file
        index = len(selected)
        if file.file_type().has_children() and selector.traverse_descendants(info):
            info.depth += 1
            for child in file.children():
                info.file = child
                BaseStorageHandle._traverse(info, selector, depth_first, selected)
            info.file = file
            info.depth -= 1
        if selector.include_file(info):
            if depth_first:
                selected.append(file)
            else:
                selected.insert(index, file)

    def open_read(self) -> t.BinaryIO:
        """Open a binary stream to read the content of the file."""
        raise NotImplementedError

    def open_write(self, append: bool = False) -> t.BinaryIO:
        """Open a binary stream to replace the content of the file."""
        raise NotImplementedError

    def read_bytes(self) -> bytes:
        with self.open_read() as src:
            return src.read()

    def write_bytes(self, data: bytes):
        with self.open_write() as dest:
            dest.write(data)
        self._complete_upload()

    def _complete_upload(self):
        """Override to specify behaviour after new content has been written."""
        self.clear_cache()

    def _default_buffer_size(self):
        """Override this to set the default buffer size for reading/writing."""
        return 2621440

    def download(self, local_path: pathlib.Path, allow_overwrite: bool = False, buffer_size: int = None):
        """Download the file to the given local path."""
        if (not allow_overwrite) and local_path.exists():
            raise StorageError(f"Path [{local_path}] already exists, cannot download from [{self}]", 1000, is_recoverable=True)
        if buffer_size is None:
            buffer_size = self._default_buffer_size()
        try:
            with self.open_read() as src:
                with open(local_path, "wb") as dest:
                    copy_stream(src, dest, buffer_size)
        except Exception as ex:
            local_path.unlink(True)
            raise ex

    def remove(self):
        """Remove the file or directory, if it exists."""
        raise NotImplementedError

    def remove_tree(self) -> int:
        """Remove this handle and everything below it, returning how many entries were removed."""
        files = self.find_files(SELECT_ALL, depth_first=True)
        for file in files:
            file.remove()
        self.clear_cache()
        return len(files)

    def size(self, clear_cache: bool = False) -> t.Optional[int]:
        """Retrieve the size of the file."""
        return self._with_cache('size', self._size, clear_cache=clear_cache)

    def _size(self) -> t.Optional[int]:
        return None

    def modified_datetime(self, clear_cache: bool = False) -> t.Optional[datetime.datetime]:
        """Get the last modified time of the entry."""
        return self._with_cache('modified_datetime', self._modified_datetime, clear_cache=clear_cache)

    def _modified_datetime(self) -> t.Optional[datetime.datetime]:
        return None

    def set_modified_datetime(self, value: datetime.datetime) -> bool:
        """Set the last modified time, returning True if the backend accepted it."""
        return False

    def credential_identity(self) -> t.Optional[t.Hashable]:
        """Identity of the credentials used to reach this handle, if any.

            Two handles with equal identities can copy objects between each other on the server.
        """
        return None

    def can_rename_to(self, other: BaseStorageHandle) -> bool:
        return False

    def rename_to(self, other: BaseStorageHandle):
        raise RenameNotSupportedError(self.path(), other.path())

    @staticmethod
    def supports(file_path: str) -> bool:
        """Check if this handle class supports the given file path."""
        raise NotImplementedError
