"""Selectors decide which files a traversal (e.g. find_files()) returns and how deep it goes."""
from __future__ import annotations
import dataclasses
import typing as t

from .types import FileType

if t.TYPE_CHECKING:
    from .base import BaseStorageHandle


@dataclasses.dataclass
class FileSelectInfo:
    """Information about the file currently being visited during a traversal."""

    base_folder: BaseStorageHandle
    file: BaseStorageHandle
    depth: int = 0


class FileSelector:

    def include_file(self, info: FileSelectInfo) -> bool:
        """Check if the file should be part of the selection."""
        raise NotImplementedError

    def traverse_descendants(self, info: FileSelectInfo) -> bool:
        """Check if the children of the given folder should be visited."""
        raise NotImplementedError


class FileDepthSelector(FileSelector):
    """Selects files between min_depth and max_depth (inclusive), where the base folder is at depth 0."""

    def __init__(self, min_depth: int = 0, max_depth: t.Optional[int] = None):
        self.min_depth = min_depth
        self.max_depth = max_depth

    def include_file(self, info: FileSelectInfo) -> bool:
        if info.depth < self.min_depth:
            return False
        return self.max_depth is None or info.depth <= self.max_depth

    def traverse_descendants(self, info: FileSelectInfo) -> bool:
        return self.max_depth is None or info.depth < self.max_depth


class AllFileSelector(FileDepthSelector):

    def __init__(self):
        super().__init__(0, None)


class FileTypeSelector(FileSelector):
    """Selects every file of the given type, anywhere in the tree."""

    def __init__(self, file_type: FileType):
        self.file_type = file_type

    def include_file(self, info: FileSelectInfo) -> bool:
        return info.file.file_type() == self.file_type

    def traverse_descendants(self, info: FileSelectInfo) -> bool:
        return True


SELECT_SELF = FileDepthSelector(0, 0)
SELECT_SELF_AND_CHILDREN = FileDepthSelector(0, 1)
SELECT_CHILDREN = FileDepthSelector(1, 1)
SELECT_ALL = AllFileSelector()
SELECT_FILES = FileTypeSelector(FileType.FILE)
SELECT_FOLDERS = FileTypeSelector(FileType.FOLDER)
