"""
Standalone API server: opens a decrypted archive directory and serves it over HTTP.
Run: python -m server -d <archive dir> -k <auth key> [-p 8080] [-r 300]
(from repo root, with .env or CHATVAULT_* env vars as defaults).
"""

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
import typer
import uvicorn
from dotenv import load_dotenv

# Repo root: from src/server/__main__.py go up to repo root
_REPO_ROOT = Path(__file__).resolve().parent.parent.parent
for path in (_REPO_ROOT / ".env", Path.cwd() / ".env"):
    if path.exists():
        load_dotenv(path)
        break

from api.main import create_app
from chatvault.config import ServerSettings
from chatvault.infrastructure import ArchiveError, open_archive

logger = logging.getLogger("server")

cli = typer.Typer(
    help="Serve a decrypted chat archive over an authenticated HTTP API.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

_ENDPOINTS = (
    ("GET ", "/api/contacts", "contact directory"),
    ("GET ", "/api/messages/{wxid}", "messages for one contact (?limit=&offset=)"),
    ("GET ", "/api/status", "service status"),
    ("POST", "/api/contacts/refresh", "reload the contact directory"),
)


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _log_banner(settings: ServerSettings) -> None:
    logger.info("chatvault API listening on http://%s:%d", settings.host, settings.port)
    logger.info("Contact refresh interval: %ss", settings.refresh_interval)
    for method, route, description in _ENDPOINTS:
        logger.info("  %s %-24s %s", method, route, description)
    logger.info("Auth: 'Authorization: Bearer <key>' header or ?auth_key=<key>")


@cli.command()
def serve(
    db_path: Optional[Path] = typer.Option(
        None, "--db-path", "-d", help="Decrypted archive directory (contains contact.db)."
    ),
    auth_key: Optional[str] = typer.Option(
        None, "--auth-key", "-k", help="Key clients must present."
    ),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default 8080)."),
    refresh_interval: Optional[int] = typer.Option(
        None, "--refresh-interval", "-r", help="Contact refresh interval in seconds (default 300, min 10)."
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default 0.0.0.0)."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default INFO)."),
) -> None:
    """Start the API server."""
    overrides = {
        "db_path": db_path,
        "auth_key": auth_key,
        "port": port,
        "refresh_interval": refresh_interval,
        "host": host,
        "log_level": log_level,
    }
    try:
        settings = ServerSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValueError as exc:
        _fail(str(exc))
    if settings.db_path is None:
        _fail("--db-path is required")
    if not settings.auth_key:
        _fail("--auth-key is required")

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level, logging.INFO),
    )
    logger.info(
        "db-path=%s port=%d refresh-interval=%ss",
        settings.db_path,
        settings.port,
        settings.refresh_interval,
    )

    try:
        service = open_archive(settings.db_path, refresh_interval=settings.refresh_interval)
    except ArchiveError as exc:
        logger.error("Startup failed: %s", exc)
        raise typer.Exit(code=1) from exc

    app = create_app(service, settings)
    _log_banner(settings)
    # uvicorn exits with status 1 itself if the port cannot be bound.
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        lifespan="on",
    )


def main() -> None:
    """Console entrypoint. Usage errors exit 1, not click's default 2."""
    try:
        result = cli(standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        sys.exit(1)
    except click.Abort:
        sys.exit(1)
    sys.exit(result if isinstance(result, int) else 0)


if __name__ == "__main__":
    main()
