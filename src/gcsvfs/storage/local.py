"""Local file handle"""
import datetime
import os
import pathlib
import typing as t

from .base import BaseStorageHandle, MalformedPathError, local_file_error_wrap
from .types import FileType


class LocalHandle(BaseStorageHandle):
    """Handle for a file stored on a local disk or accessible network drive.

        The underlying functionality is based on pathlib.Path with additional
        caching layers.
    """

    def __init__(self, path: pathlib.Path, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._path = path.expanduser().absolute()

    @property
    def local_path(self) -> pathlib.Path:
        return self._path

    @local_file_error_wrap
    def stat(self, clear_cache: bool = False):
        """Retrieve the stat information about the file handle."""
        return self._with_cache('stat', self._path.stat, clear_cache=clear_cache)

    def _file_type(self) -> FileType:
        if self._path.is_dir():
            return FileType.FOLDER
        if self._path.exists():
            return FileType.FILE
        return FileType.IMAGINARY

    @local_file_error_wrap
    def _list_child_names(self) -> list[str]:
        return sorted(x.name + ('/' if x.is_dir() else '') for x in self._path.iterdir())

    @local_file_error_wrap
    def open_read(self) -> t.BinaryIO:
        return open(self._path, "rb")

    @local_file_error_wrap
    def open_write(self, append: bool = False) -> t.BinaryIO:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self.clear_cache()
        return open(self._path, "ab" if append else "wb")

    @local_file_error_wrap
    def create_folder(self):
        self._path.mkdir(parents=True, exist_ok=True)
        self.clear_cache()

    def _name(self) -> str:
        return self._path.name

    @local_file_error_wrap
    def remove(self):
        if self._path.is_dir():
            self._path.rmdir()
        else:
            self._path.unlink(True)
        self.clear_cache()

    def path(self):
        return str(self._path)

    def modified_datetime(self, clear_cache: bool = False) -> t.Optional[datetime.datetime]:
        if not self._path.exists():
            return None
        m_time = self.stat(clear_cache).st_mtime
        if m_time is not None:
            return datetime.datetime.fromtimestamp(
                m_time,
                datetime.timezone(datetime.timedelta(hours=0), "UTC")
            )
        return None

    @local_file_error_wrap
    def set_modified_datetime(self, value: datetime.datetime) -> bool:
        timestamp = value.timestamp()
        os.utime(self._path, (timestamp, timestamp))
        self.clear_cache()
        return True

    def child(self, sub_path: str, as_dir: bool = False):
        return LocalHandle(self._path / sub_path.strip('/'))

    def relative_name(self, descendant: BaseStorageHandle) -> str:
        if not isinstance(descendant, LocalHandle):
            raise MalformedPathError(descendant.path(), f"not a descendant of [{self}]")
        try:
            return descendant.local_path.relative_to(self._path).as_posix()
        except ValueError as ex:
            raise MalformedPathError(descendant.path(), f"not a descendant of [{self}]") from ex

    def size(self, clear_cache: bool = False) -> t.Optional[int]:
        if not self._path.is_file():
            return None
        return self.stat(clear_cache).st_size

    @staticmethod
    def supports(file_path: str) -> bool:
        return True

    @classmethod
    def build(cls, file_path: str) -> BaseStorageHandle:
        if file_path.startswith("file://"):
            return cls(pathlib.Path(file_path[7:]))
        return cls(pathlib.Path(file_path))

