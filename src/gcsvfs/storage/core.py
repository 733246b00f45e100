from autoinject import injector
import pathlib
import threading
import typing as t
import zirconium as zr
import zrlog

from .base import BaseStorageHandle
from .gcs import GCSFileSystem, GCSFileHandle, CAPABILITIES
from .local import LocalHandle
from .names import ResourceName, parse
from .options import GCSFileSystemOptions


@injector.injectable_global
class StorageController:
    """Controller class that identifies the correct handler for a given string.

        gcs://BUCKET/PATH -> GCSFileHandle
        gs://BUCKET/PATH -> GCSFileHandle
        (default or path-like) -> LocalHandle

        File systems are created once for each bucket and set of options, so that every
        handle in a bucket shares the same client.
    """

    config: zr.ApplicationConfig = None

    @injector.construct
    def __init__(self):
        self.capabilities = CAPABILITIES
        self.default_handle = LocalHandle
        self._file_systems: dict[tuple[str, GCSFileSystemOptions], GCSFileSystem] = {}
        self._lock = threading.Lock()
        self._log = zrlog.get_logger("gcsvfs.storage")

    def get_handle(self, file_path: t.Union[str, pathlib.Path], options: t.Optional[GCSFileSystemOptions] = None) -> BaseStorageHandle:
        """Build an appropriate handle for the given file path.

            Options are read from the configuration for the bucket when they are not given.
        """
        if isinstance(file_path, pathlib.Path):
            return LocalHandle(file_path.resolve())
        if GCSFileHandle.supports(file_path):
            name = parse(file_path)
            return self.get_file_system(name, options).resolve_file(name)
        return self.default_handle.build(file_path)

    def get_file_system(self, name: ResourceName, options: t.Optional[GCSFileSystemOptions] = None) -> GCSFileSystem:
        """Get the file system for the bucket of the given name, creating it if needed."""
        if options is None:
            options = GCSFileSystemOptions.from_config(self.config, name.container)
        key = (name.root_uri(), options)
        with self._lock:
            if key not in self._file_systems:
                self._log.debug(f"Creating file system for [{name.root_uri()}]")
                self._file_systems[key] = GCSFileSystem(name, options, options.bind())
            return self._file_systems[key]

    def clear_file_systems(self):
        """Forget every file system created so far (new handles will get new clients)."""
        with self._lock:
            self._file_systems.clear()
