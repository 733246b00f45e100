"""Names for objects in a bucket.

    A name is parsed from a URI of the form

    gcs://BUCKET/path/to/object

    Backslashes are treated as separators, repeated separators are collapsed and
    '.' and '..' segments are resolved. A trailing separator declares the name to be
    a folder. The root of a bucket has the key '/'; every other key is stored
    without a leading separator so it can be used directly as the object name.
"""
from __future__ import annotations
import dataclasses
import re
import typing as t

from .base import MalformedPathError
from .types import FileType


PATH_DELIMITER = "/"
ROOT_KEY = "/"

_SCHEME_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(.*)$", re.DOTALL)


@dataclasses.dataclass(frozen=True)
class ResourceName:

    scheme: str
    container: str
    key: str = ROOT_KEY
    declared_type: FileType = FileType.UNKNOWN

    def __str__(self):
        return self.uri()

    def is_root(self) -> bool:
        return self.key == ROOT_KEY

    def object_key(self) -> str:
        """Get the key as the backend expects it (no leading separator, except for the root)."""
        if self.key != ROOT_KEY and self.key.startswith(PATH_DELIMITER):
            return self.key[1:]
        return self.key

    def listing_prefix(self) -> str:
        """Get the key with exactly one trailing separator, as used for prefix listings."""
        if self.key.endswith(PATH_DELIMITER):
            return self.key
        return self.key + PATH_DELIMITER

    def base_name(self) -> str:
        if self.is_root():
            return ""
        return self.key[self.key.rfind(PATH_DELIMITER) + 1:]

    def parent(self) -> t.Optional[ResourceName]:
        if self.is_root():
            return None
        if PATH_DELIMITER not in self.key:
            return dataclasses.replace(self, key=ROOT_KEY, declared_type=FileType.FOLDER)
        return dataclasses.replace(self, key=self.key[:self.key.rfind(PATH_DELIMITER)], declared_type=FileType.FOLDER)

    def root_uri(self) -> str:
        return f"{self.scheme}://{self.container}"

    def uri(self) -> str:
        if self.is_root():
            return f"{self.root_uri()}/"
        if self.declared_type == FileType.FOLDER:
            return f"{self.root_uri()}/{self.key}/"
        return f"{self.root_uri()}/{self.key}"

    def relative_name(self, descendant: ResourceName) -> str:
        """Get the path of descendant relative to this name."""
        if descendant.key == self.key:
            return "."
        if self.is_root():
            return descendant.key
        if descendant.key.startswith(self.listing_prefix()):
            return descendant.key[len(self.listing_prefix()):]
        raise MalformedPathError(descendant.uri(), f"not a descendant of [{self.uri()}]")


def _normalize_key(path: str, original: str) -> tuple[str, bool]:
    """Normalize a path into a key, also reporting if it ended with a separator."""
    path = path.replace("\\", PATH_DELIMITER)
    trailing = path.endswith(PATH_DELIMITER)
    segments = []
    for segment in path.split(PATH_DELIMITER):
        if segment == "" or segment == ".":
            continue
        if segment == "..":
            if not segments:
                raise MalformedPathError(original, "path escapes the bucket root")
            segments.pop()
        else:
            segments.append(segment)
    if not segments:
        return ROOT_KEY, trailing
    return PATH_DELIMITER.join(segments), trailing


def parse(uri: str) -> ResourceName:
    """Parse a URI into a ResourceName."""
    if not uri:
        raise MalformedPathError(str(uri), "empty path")
    match = _SCHEME_PATTERN.match(uri.replace("\\", PATH_DELIMITER))
    if match is None:
        raise MalformedPathError(uri, "missing scheme")
    rest = match.group(2).lstrip(PATH_DELIMITER)
    container = rest.split(PATH_DELIMITER, 1)[0]
    if not container or container in (".", ".."):
        raise MalformedPathError(uri, "missing bucket name")
    key, trailing = _normalize_key(rest[len(container):], uri)
    if key == ROOT_KEY:
        declared_type = FileType.UNKNOWN
    elif trailing:
        declared_type = FileType.FOLDER
    else:
        declared_type = FileType.FILE
    return ResourceName(match.group(1).lower(), container, key, declared_type)


def derive(base: ResourceName, relative_name: str, declared_type: t.Optional[FileType] = None) -> ResourceName:
    """Build a new name in the same bucket as base.

        Relative names are resolved against the key of base; names that start with a separator
        are resolved against the bucket root. A trailing separator declares a folder, otherwise
        declared_type is used (UNKNOWN if not given).
    """
    relative_name = relative_name.replace("\\", PATH_DELIMITER)
    if relative_name.startswith(PATH_DELIMITER) or base.is_root():
        full_path = relative_name
    else:
        full_path = f"{base.key}{PATH_DELIMITER}{relative_name}"
    key, trailing = _normalize_key(full_path, f"{base.uri()} + {relative_name}")
    if trailing and key != ROOT_KEY:
        declared_type = FileType.FOLDER
    elif declared_type is None:
        declared_type = FileType.UNKNOWN
    return ResourceName(base.scheme, base.container, key, declared_type)
