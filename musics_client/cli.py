"""
Command-line interface for musics-client.

This module implements the CLI using Click, with rich-click for help
formatting and rich tables for listings. Every command builds one
MusicsApp from the configuration, restores the persisted session and
runs against the configured backend.

Commands:
    musics health                         Probe the backend
    musics catalog [--refresh] [--sections]
    musics login | register | logout | whoami
    musics favorites list | add <id> | remove <id>
    musics downloads list | get <id> [--output DIR]
    musics select <id>                    Toggle a selection (guests too)
    musics selections                     List selected tracks
    musics admin login | logout | users | delete-track <id>

Options:
    --config <path>                       Explicit config.yaml
    --log-level <level>                   Console log level override

Exit Codes:
    0   Success
    1   Configuration error or failed operation
    2   Local storage error
    3   Network or server error
    4   Authentication or validation error
    130 Interrupted
"""

import sys
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import rich_click as click
from rich.console import Console
from rich.table import Table

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100
click.rich_click.COMMAND_GROUPS = {
    "musics": [
        {
            "name": "Catalog",
            "commands": ["health", "catalog"],
        },
        {
            "name": "Account",
            "commands": ["login", "register", "logout", "whoami"],
        },
        {
            "name": "Library",
            "commands": ["favorites", "downloads", "select", "selections"],
        },
        {
            "name": "Administration",
            "commands": ["admin"],
        },
    ],
}

from musics_client import __version__
from musics_client.api.models import Track
from musics_client.app import MusicsApp
from musics_client.core.cache import CATALOG_KEY, USERS_KEY
from musics_client.core import (
    AuthError,
    ConfigError,
    MusicsClientError,
    NetworkError,
    ServerError,
    StorageError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from musics_client.utils import format_time

logger = get_logger(__name__)

console = Console()


# =============================================================================
# Plumbing
# =============================================================================

class CliState:
    """Options of the root command, plus the lazily built app."""

    def __init__(self, config_path: Path | None, log_level: str | None) -> None:
        self.config_path = config_path
        self.log_level = log_level
        self.app: MusicsApp | None = None

    def get_app(self) -> MusicsApp:
        if self.app is None:
            config = load_config(self.config_path)
            level = self.log_level or config.logging.level
            setup_logging(config.logging.directory, level=level)
            self.app = MusicsApp(config).start(bind_collections=False)
        return self.app

    def close(self) -> None:
        if self.app is not None:
            self.app.close()
        shutdown_logging()


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Map typed errors to a message on stderr and an exit code."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)

        except ConfigError as e:
            click.echo(f"Configuration error: {e.message}", err=True)
            sys.exit(1)

        except StorageError as e:
            click.echo(f"Storage error: {e.message}", err=True)
            logger.error(f"Storage error: {e.message}", exc_info=True)
            sys.exit(2)

        except (NetworkError, ServerError) as e:
            click.echo(f"Server error: {e.message}", err=True)
            sys.exit(3)

        except (AuthError, ValidationError) as e:
            click.echo(f"Error: {e.message}", err=True)
            sys.exit(4)

        except MusicsClientError as e:
            click.echo(f"Error: {e.message}", err=True)
            logger.error(f"Error: {e.message}", exc_info=True)
            sys.exit(1)

        except KeyboardInterrupt:
            click.echo("\nInterrupted by user", err=True)
            sys.exit(130)

    return wrapper


def _app(ctx: click.Context) -> MusicsApp:
    return ctx.find_object(CliState).get_app()


def _require_user(app: MusicsApp) -> None:
    if not app.session.is_authenticated:
        raise AuthError("You are not logged in. Run 'musics login' first.")


def _require_admin(app: MusicsApp) -> None:
    if not app.admin.is_authenticated:
        raise AuthError("Admin area requires 'musics admin login' first.")


def _fail(message: str | None) -> None:
    click.echo(f"Error: {message or 'Operation failed'}", err=True)
    sys.exit(1)


def _track_table(title: str, tracks: list[Track]) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("Genre")
    table.add_column("Length", justify="right")

    for track in tracks:
        table.add_row(
            track.id,
            track.title,
            track.artist,
            track.genre,
            format_time(track.duration_seconds) if track.duration_seconds else "-",
        )
    return table


def _resolve_tracks(app: MusicsApp, music_ids: list[str]) -> list[Track]:
    """Look ids up in the catalog; unknown ids become placeholder tracks."""
    app.catalog.fetch_tracks()
    return [app.catalog.find(music_id) or Track(id=music_id) for music_id in music_ids]


# =============================================================================
# Root
# =============================================================================

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Console log level"
)
@click.version_option(__version__, prog_name="musics-client")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None) -> None:
    """
    musics-client: catalog, library and session tools for musics-system.

    \b
    EXAMPLES:
        musics catalog --sections
        musics login --email ana@example.com
        musics favorites add 64f1c2...
        musics select 64f1c2...            # works as a guest too
    """
    state = CliState(config_path, log_level)
    ctx.obj = state
    ctx.call_on_close(state.close)


@cli.command()
@click.pass_context
@_handle_errors
def health(ctx: click.Context) -> None:
    """Check that the backend answers."""
    status = _app(ctx).gateway.check_health()
    click.echo(f"{status.status}: {status.message}")
    if not status.ok:
        sys.exit(3)


@cli.command()
@click.option("--refresh", is_flag=True, help="Ignore the cached catalog")
@click.option("--sections", is_flag=True, help="Group as Trending / For You / Others")
@click.pass_context
@_handle_errors
def catalog(ctx: click.Context, refresh: bool, sections: bool) -> None:
    """List the track catalog."""
    app = _app(ctx)
    if not app.catalog.fetch_tracks(force_refresh=refresh):
        _fail(app.catalog.errors[CATALOG_KEY])

    if not sections:
        console.print(_track_table(f"Catalog ({len(app.catalog.tracks)})", app.catalog.tracks))
        return

    grouped = app.catalog.sections
    for title, tracks in (
        ("Trending", grouped.trending),
        ("For You", grouped.for_you),
        ("Others", grouped.others),
    ):
        if tracks:
            console.print(_track_table(title, list(tracks)))


# =============================================================================
# Account
# =============================================================================

@cli.command()
@click.option("--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_context
@_handle_errors
def login(ctx: click.Context, email: str, password: str) -> None:
    """Sign in. Guest selections are linked to the account."""
    session = _app(ctx).session.login(email, password)
    click.echo(f"Signed in as {session.display_name}")


@cli.command()
@click.option("--name", "full_name", prompt="Full name", help="Full name (3+ characters)")
@click.option("--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Password (6+ characters)")
@click.option(
    "--confirm-password",
    prompt="Confirm password",
    hide_input=True,
    help="Repeat the password"
)
@click.pass_context
@_handle_errors
def register(
    ctx: click.Context,
    full_name: str,
    email: str,
    password: str,
    confirm_password: str
) -> None:
    """Create an account and sign in with it."""
    session = _app(ctx).session.register(full_name, email, password, confirm_password)
    click.echo(f"Welcome, {session.display_name}")


@cli.command()
@click.pass_context
@_handle_errors
def logout(ctx: click.Context) -> None:
    """Forget the stored session."""
    _app(ctx).session.logout()


@cli.command()
@click.pass_context
@_handle_errors
def whoami(ctx: click.Context) -> None:
    """Show the signed-in user, or the guest device."""
    app = _app(ctx)
    if app.session.is_authenticated:
        session = app.session.session
        click.echo(f"{session.display_name} <{session.email}> (id {session.user_id})")
    else:
        device_id = app.identity.peek_device_id()
        click.echo(f"Guest (device {device_id})" if device_id else "Guest")

    if app.admin.is_authenticated:
        click.echo(f"Admin area: {app.admin.session.email}")


# =============================================================================
# Library
# =============================================================================

@cli.group()
def favorites() -> None:
    """Manage favorite tracks."""


@favorites.command("list")
@click.pass_context
@_handle_errors
def favorites_list(ctx: click.Context) -> None:
    app = _app(ctx)
    _require_user(app)
    if not app.favorites.fetch_all():
        _fail(app.favorites.error)

    entries = app.favorites.entries
    if all(e.track is not None for e in entries):
        tracks = [e.track for e in entries]
    else:
        tracks = _resolve_tracks(app, app.favorites.music_ids())
    console.print(_track_table(f"Favorites ({len(tracks)})", tracks))


@favorites.command("add")
@click.argument("music_id")
@click.pass_context
@_handle_errors
def favorites_add(ctx: click.Context, music_id: str) -> None:
    app = _app(ctx)
    _require_user(app)
    if not app.favorites.add(music_id):
        _fail(app.favorites.error)
    click.echo(f"Added {music_id} to favorites")


@favorites.command("remove")
@click.argument("music_id")
@click.pass_context
@_handle_errors
def favorites_remove(ctx: click.Context, music_id: str) -> None:
    app = _app(ctx)
    _require_user(app)
    if not app.favorites.remove(music_id):
        _fail(app.favorites.error)
    click.echo(f"Removed {music_id} from favorites")


@cli.group()
def downloads() -> None:
    """Download history and audio files."""


@downloads.command("list")
@click.pass_context
@_handle_errors
def downloads_list(ctx: click.Context) -> None:
    app = _app(ctx)
    _require_user(app)
    if not app.downloads.fetch_all():
        _fail(app.downloads.error)

    table = Table(title=f"Downloads ({len(app.downloads)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title")
    table.add_column("Downloaded at")
    for entry in app.downloads.entries:
        title = entry.track.title if entry.track else "-"
        table.add_row(entry.music_id, title, entry.created_at or "-")
    console.print(table)


@downloads.command("get")
@click.argument("music_id")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("downloads"),
    show_default=True,
    help="Directory for the audio file"
)
@click.pass_context
@_handle_errors
def downloads_get(ctx: click.Context, music_id: str, output: Path) -> None:
    """Record a download and save the audio file."""
    app = _app(ctx)
    _require_user(app)
    if not app.catalog.fetch_tracks():
        _fail(app.catalog.errors[CATALOG_KEY])

    track = app.catalog.find(music_id)
    if track is None:
        raise ValidationError(f"Track not found: {music_id}", field="music_id")

    path = app.downloads.download(track, output.expanduser())
    if path is None:
        _fail(app.downloads.error)
    click.echo(f"Saved {path}")


@cli.command()
@click.argument("music_id")
@click.pass_context
@_handle_errors
def select(ctx: click.Context, music_id: str) -> None:
    """Select a track, or unselect it if already selected."""
    app = _app(ctx)
    if not app.selections.fetch():
        _fail(app.selections.error)
    if not app.selections.toggle_selection(music_id):
        _fail(app.selections.error)

    verb = "Selected" if app.selections.is_selected(music_id) else "Unselected"
    click.echo(f"{verb} {music_id} ({app.selections.owner})")


@cli.command()
@click.pass_context
@_handle_errors
def selections(ctx: click.Context) -> None:
    """List selected tracks for the current user or guest device."""
    app = _app(ctx)
    if not app.selections.fetch():
        _fail(app.selections.error)

    tracks = _resolve_tracks(app, app.selections.selected_ids)
    console.print(_track_table(f"Selections ({len(tracks)})", tracks))


# =============================================================================
# Administration
# =============================================================================

@cli.group()
def admin() -> None:
    """Admin area (requires an Admin account)."""


@admin.command("login")
@click.option("--email", prompt=True, help="Admin email")
@click.option("--password", prompt=True, hide_input=True, help="Admin password")
@click.pass_context
@_handle_errors
def admin_login(ctx: click.Context, email: str, password: str) -> None:
    session = _app(ctx).admin.login(email, password)
    click.echo(f"Admin signed in: {session.display_name}")


@admin.command("logout")
@click.pass_context
@_handle_errors
def admin_logout(ctx: click.Context) -> None:
    _app(ctx).admin.logout()
    click.echo("Admin signed out")


@admin.command("users")
@click.option("--refresh", is_flag=True, help="Ignore the cached list")
@click.pass_context
@_handle_errors
def admin_users(ctx: click.Context, refresh: bool) -> None:
    app = _app(ctx)
    _require_admin(app)
    if not app.catalog.fetch_users(app.admin.token, force_refresh=refresh):
        _fail(app.catalog.errors[USERS_KEY])

    table = Table(title=f"Users ({len(app.catalog.users)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Type")
    for user in app.catalog.users:
        table.add_row(user.id, user.full_name, user.email, user.user_type or "-")
    console.print(table)


@admin.command("delete-track")
@click.argument("track_id")
@click.confirmation_option(prompt="Delete this track permanently?")
@click.pass_context
@_handle_errors
def admin_delete_track(ctx: click.Context, track_id: str) -> None:
    app = _app(ctx)
    _require_admin(app)
    app.gateway.delete_track(app.admin.token, track_id)
    click.echo(f"Deleted track {track_id}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `musics` from the command line.
    """
    cli(prog_name="musics")


if __name__ == "__main__":
    main()
