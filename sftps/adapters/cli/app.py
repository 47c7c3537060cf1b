"""
Main CLI application
"""
import typer
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterator, Optional

from rich.markup import escape

from ...core.client import SecureFtp
from ...core.constants import HOST_KEY_ACCEPT_ANY
from ...core.exceptions import ConfigError, ConnectionError, SftpsError
from ...core.logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from ...core.utils import format_size
from ..config.loader import ConfigLoader
from .connection import SftpConnectionFactory

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()

app = typer.Typer(
    name="sftps",
    add_completion=False,
    help="Minimal SFTP client",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(
        None, "--host", "-H", help="Remote host or ~/.ssh/config alias"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-P", help="SSH port (default: 22)"
    ),
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="SSH username"
    ),
    password: Optional[str] = typer.Option(
        None, "--password", help="SSH password (prefer SFTPS_PASSWORD)"
    ),
    key_file: Optional[Path] = typer.Option(
        None, "--key", "-i", help="Private key file"
    ),
    passphrase: Optional[str] = typer.Option(
        None, "--passphrase", help="Private key passphrase"
    ),
    host_key_policy: Optional[str] = typer.Option(
        None,
        "--host-key-policy",
        help=f"accept-any, trust-on-first-use or verify (default: {HOST_KEY_ACCEPT_ANY})",
    ),
    known_hosts: Optional[Path] = typer.Option(
        None, "--known-hosts", help="Known hosts file"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Connect timeout in seconds"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML configuration file"
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
):
    """
    sftps - minimal SFTP client

    Connection settings come from options, SFTPS_* environment variables
    and an optional TOML file, in that order of priority.
    """
    setup_logging(level=log_level, log_file=log_file)

    try:
        settings = ConfigLoader().load(
            toml_path=config,
            cli_overrides={
                "host": host,
                "port": port,
                "user": user,
                "password": password,
                "key_file": str(key_file) if key_file else None,
                "passphrase": passphrase,
                "host_key_policy": host_key_policy,
                "known_hosts": str(known_hosts) if known_hosts else None,
                "timeout": timeout,
            },
        )
    except ConfigError as e:
        stderr_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    ctx.obj = settings


def _prompt_missing_password(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Prompt for a password when no credential is configured"""
    if settings.get("password") or settings.get("key") or settings.get("key_file"):
        return settings
    password = typer.prompt(
        f"Password for {settings.get('user', 'root')}@{settings['host']}",
        hide_input=True,
        default="",
        show_default=False,
    )
    return {**settings, "password": password or None}


@contextmanager
def open_session(ctx: typer.Context) -> Iterator[SecureFtp]:
    """Connect from the CLI settings, exiting with status 1 on any error"""
    factory = SftpConnectionFactory()
    try:
        settings = _prompt_missing_password(factory.resolve(ctx.obj or {}))
        ftp = factory.create(settings)
    except ConfigError as e:
        stderr_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except ConnectionError as e:
        stderr_console.print(f"[red]Connection error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        with ftp:
            yield ftp
    except SftpsError as e:
        logger.debug("Operation failed", exc_info=True)
        stderr_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command("ls")
def list_command(
    ctx: typer.Context,
    path: str = typer.Argument(".", help="Remote directory or file"),
):
    """List a remote path (ls -al)"""
    with open_session(ctx) as ftp:
        listing = ftp.list(path)
    stdout_console.print(listing, end="", markup=False, highlight=False, soft_wrap=True)


@app.command("get")
def get_command(
    ctx: typer.Context,
    remote: str = typer.Argument(..., help="Remote file"),
    local: Optional[Path] = typer.Argument(None, help="Local destination (default: remote file name)"),
):
    """Download a remote file"""
    local = local or Path(PurePosixPath(remote).name)
    with open_session(ctx) as ftp:
        size = ftp.download(local, remote)
    stdout_console.print(f"[green]✓[/green] {escape(remote)} → {escape(str(local))} ({format_size(size)})")


@app.command("put")
def put_command(
    ctx: typer.Context,
    local: Path = typer.Argument(..., help="Local file"),
    remote: Optional[str] = typer.Argument(None, help="Remote destination (default: local file name)"),
):
    """Upload a local file"""
    remote = remote or local.name
    with open_session(ctx) as ftp:
        size = ftp.upload(local, remote)
    stdout_console.print(f"[green]✓[/green] {escape(str(local))} → {escape(remote)} ({format_size(size)})")


@app.command("mkdir")
def mkdir_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Remote directory to create"),
):
    """Create a remote directory"""
    with open_session(ctx) as ftp:
        ftp.mkdir(path)


@app.command("rm")
def remove_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Remote file or empty directory"),
):
    """Remove a remote file or empty directory"""
    with open_session(ctx) as ftp:
        ftp.remove(path)


@app.command("mv")
def rename_command(
    ctx: typer.Context,
    old_path: str = typer.Argument(..., help="Existing remote path"),
    new_path: str = typer.Argument(..., help="New remote path"),
):
    """Rename a remote path"""
    with open_session(ctx) as ftp:
        ftp.rename(old_path, new_path)


@app.command("ln")
def symlink_command(
    ctx: typer.Context,
    target_path: str = typer.Argument(..., help="Path the link points to"),
    link_path: str = typer.Argument(..., help="Link to create"),
):
    """Create a remote symbolic link"""
    with open_session(ctx) as ftp:
        ftp.symlink(target_path, link_path)


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
