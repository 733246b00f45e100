"""Shared enumerations for storage handles."""
import enum


class FileType(enum.Enum):
    """What a path represents once it has been looked up.

        UNKNOWN is only ever a declared type (i.e. from parsing); resolving a
        handle always produces FILE, FOLDER or IMAGINARY.
    """

    FILE = "file"
    FOLDER = "folder"
    IMAGINARY = "imaginary"
    UNKNOWN = "unknown"

    def has_content(self) -> bool:
        return self is FileType.FILE

    def has_children(self) -> bool:
        return self is FileType.FOLDER


class Capability(enum.Enum):
    """Operations a file system can advertise to its callers."""

    GET_TYPE = "get_type"
    READ_CONTENT = "read_content"
    WRITE_CONTENT = "write_content"
    APPEND_CONTENT = "append_content"
    URI = "uri"
    ATTRIBUTES = "attributes"
    RANDOM_ACCESS_READ = "random_access_read"
    DIRECTORY_READ_CONTENT = "directory_read_content"
    LIST_CHILDREN = "list_children"
    LAST_MODIFIED = "last_modified"
    GET_LAST_MODIFIED = "get_last_modified"
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"
