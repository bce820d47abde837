"""Command-line interface for quark_drive."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from quark_drive import DriveClient, DriveError, FileNode, load_config, load_cookie


def get_client(cookie: str | None) -> DriveClient:
    """Create a DriveClient from the given cookie, or ``QUARK_COOKIE``."""
    resolved = cookie or load_cookie()
    if not resolved:
        raise click.UsageError("No cookie given. Pass --cookie or set QUARK_COOKIE.")
    return DriveClient(resolved, load_config())


@click.group()
@click.version_option(package_name="quark-drive")
@click.option("--cookie", "-c", envvar="QUARK_COOKIE", help="Drive session cookie")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, cookie: str | None, verbose: bool) -> None:
    """Quark Drive CLI - List, upload and download files in your cloud drive."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"cookie": cookie}


def _fail(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


@main.command()
@click.pass_obj
def whoami(obj: dict[str, str | None]) -> None:
    """Check that the cookie is accepted by the drive."""
    with get_client(obj["cookie"]) as client:
        info = client.validate_cookie()
    if info.valid:
        click.echo(click.style(f"Logged in as {info.nickname}", fg="green"))
    else:
        _fail("Cookie is invalid or expired")


@main.command("ls")
@click.argument("folder_id", default="0")
@click.pass_obj
def list_folder(obj: dict[str, str | None], folder_id: str) -> None:
    """List a folder by fid.

    FOLDER_ID: Folder fid to list (default: 0, the root)

    Examples:

        quark-drive ls

        quark-drive ls 3f2a9c0d1e
    """
    try:
        with get_client(obj["cookie"]) as client:
            nodes = client.list_files(folder_id)
    except DriveError as e:
        _fail(f"Error: {e}")
        return

    if not nodes:
        click.echo(f"(empty folder: {folder_id})")
    for node in nodes:
        click.echo(_format_node(node))


@main.command()
@click.argument("path")
@click.pass_obj
def mkdir(obj: dict[str, str | None], path: str) -> None:
    """Find or create a folder path and print its fid.

    Examples:

        quark-drive mkdir /Backups/vault
    """
    try:
        with get_client(obj["cookie"]) as client:
            fid = client.find_or_create_folder(path)
    except DriveError as e:
        _fail(f"Error: {e}")
        return
    click.echo(click.style(f"{path} -> {fid}", fg="green"))


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--folder", "-f", default="/", help="Target folder path (default: /)")
@click.option("--replace", is_flag=True, help="Trash existing files with the same name first")
@click.pass_obj
def upload(obj: dict[str, str | None], files: tuple[Path, ...], folder: str, replace: bool) -> None:
    """Upload files into a folder path.

    FILES: One or more local files to upload.

    Examples:

        quark-drive upload vault.bak --folder /Backups --replace
    """
    failures = 0
    with get_client(obj["cookie"]) as client:
        for file_path in files:
            try:
                result = client.upload_to_folder(
                    file_path.name, file_path.read_bytes(), folder, replace=replace
                )
            except DriveError as e:
                click.echo(click.style("✗ ", fg="red") + f"{file_path.name}: {e}", err=True)
                failures += 1
                continue
            suffix = " (instant)" if result.instant else ""
            click.echo(
                click.style("✓ ", fg="green") + f"{result.name} -> {result.file_id}{suffix}"
            )

    total = len(files)
    if failures:
        click.echo(f"\n{total - failures}/{total} file(s) uploaded.", err=True)
        sys.exit(1)
    click.echo(click.style(f"\nAll {total} file(s) uploaded successfully!", fg="green"))


@main.command()
@click.argument("file_id")
@click.option(
    "--output", "-o", required=True, type=click.Path(path_type=Path), help="Destination file"
)
@click.pass_obj
def download(obj: dict[str, str | None], file_id: str, output: Path) -> None:
    """Download a file by fid."""
    try:
        with get_client(obj["cookie"]) as client:
            data = client.download_file(file_id)
    except DriveError as e:
        _fail(f"Error: {e}")
        return
    output.write_bytes(data)
    click.echo(click.style(f"Saved {_format_size(len(data))} to {output}", fg="green"))


@main.command()
@click.argument("file_ids", nargs=-1, required=True)
@click.pass_obj
def rm(obj: dict[str, str | None], file_ids: tuple[str, ...]) -> None:
    """Move files or folders to the trash."""
    try:
        with get_client(obj["cookie"]) as client:
            for file_id in file_ids:
                client.delete_file(file_id)
                click.echo(f"Trashed {file_id}")
    except DriveError as e:
        _fail(f"Error: {e}")


def _format_node(node: FileNode) -> str:
    if node.is_dir:
        return click.style(f"  {node.name}/  [{node.fid}]", fg="blue")
    return f"  {node.name}  ({_format_size(node.size)})  [{node.fid}]"


def _format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


if __name__ == "__main__":
    main()
