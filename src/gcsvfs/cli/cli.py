import functools
import sys

import click
from autoinject import injector

from gcsvfs.boot.boot import init_gcsvfs
from gcsvfs.storage import StorageController, GCSFileHandle, LocalHandle, StorageError
from gcsvfs.storage.selectors import SELECT_ALL, SELECT_SELF
from gcsvfs.util import GCSVFSError, copy_stream


def _report_errors(cb):

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except GCSVFSError as ex:
            click.echo(f"{ex.__class__.__name__}: {str(ex)}", err=True)
            raise click.exceptions.Exit(1)

    return _inner


def _show_progress(total: int, chunk_size: int, stream_size: int):
    if stream_size > 0:
        click.echo(f"\r{total}/{stream_size} bytes ({total * 100 // stream_size}%)", nl=False, err=True)
    else:
        click.echo(f"\r{total} bytes", nl=False, err=True)


@click.group
def main():
    init_gcsvfs("cli")


@main.command
@click.argument("uri")
@_report_errors
@injector.inject
def type(uri: str, storage: StorageController = None):
    click.echo(storage.get_handle(uri).file_type().value)


@main.command
@click.argument("uri")
@_report_errors
@injector.inject
def ls(uri: str, storage: StorageController = None):
    for name in storage.get_handle(uri).list_children():
        click.echo(name)


@main.command
@click.argument("uri")
@_report_errors
@injector.inject
def cat(uri: str, storage: StorageController = None):
    handle = storage.get_handle(uri)
    out = sys.stdout.buffer
    with handle.open_read() as src:
        copy_stream(src, out, 1048576)
    out.flush()


@main.command
@click.argument("source")
@click.argument("destination")
@click.option("--recursive", is_flag=True, default=False)
@click.option("--progress", is_flag=True, default=False)
@_report_errors
@injector.inject
def cp(source: str, destination: str, recursive: bool, progress: bool, storage: StorageController = None):
    src = storage.get_handle(source)
    dest = storage.get_handle(destination)
    if isinstance(dest, GCSFileHandle):
        count = dest.copy_from(
            src,
            SELECT_ALL if recursive else SELECT_SELF,
            _show_progress if progress else None
        )
        if progress:
            click.echo("", err=True)
        click.echo(f"Copied {count} entries to {dest}")
    elif isinstance(dest, LocalHandle) and src.is_file():
        src.download(dest.local_path, allow_overwrite=True)
        click.echo(f"Downloaded {src} to {dest}")
    else:
        raise StorageError(f"Cannot copy [{src}] to [{dest}], only files can be copied to a local path", 1050)


@main.command
@click.argument("uri")
@click.option("--recursive", is_flag=True, default=False)
@_report_errors
@injector.inject
def rm(uri: str, recursive: bool, storage: StorageController = None):
    handle = storage.get_handle(uri)
    if recursive:
        click.echo(f"Removed {handle.remove_tree()} entries")
    else:
        handle.remove()
        click.echo(f"Removed {handle}")


@main.command
@click.argument("uri")
@click.option("--duration", default=3600, type=int, help="Seconds until the URL expires")
@_report_errors
@injector.inject
def sign(uri: str, duration: int, storage: StorageController = None):
    handle = storage.get_handle(uri)
    if not isinstance(handle, GCSFileHandle):
        raise StorageError(f"Cannot sign [{handle}], only GCS objects can be signed", 1051)
    url = handle.signed_url(duration)
    if url is None:
        raise StorageError(f"Cannot sign [{handle}], no object exists", 1052)
    click.echo(url)


if __name__ == "__main__":
    main()
