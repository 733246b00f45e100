import abc
import typing as t

from .exceptions import GCSVFSError, ConfigError


@t.runtime_checkable
class Readable(t.Protocol):

    @abc.abstractmethod
    def read(self, chunk_size: int) -> bytes:
        pass


@t.runtime_checkable
class Writable(t.Protocol):

    @abc.abstractmethod
    def write(self, b: bytes):
        pass


# NB:
# shutil.copyfileobj() does not report progress, so streamed copies go through copy_stream()
# instead. The chunk size is chosen by the caller; backend streams prefer large chunks to keep
# the number of round-trips low.

def copy_stream(src: Readable,
                dest: Writable,
                chunk_size: int,
                stream_size: int = -1,
                progress: t.Optional[t.Callable[[int, int, int], None]] = None) -> int:
    """Copy all bytes from src to dest, returning the number of bytes copied.

        If given, progress is called after every chunk with the total number of bytes
        copied so far, the size of the chunk, and the expected size of the stream (or -1).
    """
    total = 0
    src_bytes = src.read(chunk_size)
    while src_bytes != b'':
        dest.write(src_bytes)
        total += len(src_bytes)
        if progress is not None:
            progress(total, len(src_bytes), stream_size)
        src_bytes = src.read(chunk_size)
    return total
