# cli.py
import logging
import sys
from pathlib import Path

import click

from filestore_api.config.settings import Settings, get_settings

# Configure logging
logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Send application logs to stdout at ``level``."""
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _settings_with_overrides(**overrides) -> Settings:
    """Cached settings with any CLI options that were actually given."""
    settings = get_settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return settings
    return settings.model_copy(update=updates)


@click.group()
def cli():
    """CLI commands for the file store HTTP API and FTP gateway"""
    pass


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    for key, value in settings.get_environment_dict().items():
        click.echo(f"  {key}: {value}")


@cli.command()
@click.option("--host", default=None, help="HTTP bind address")
@click.option("--port", type=int, default=None, help="HTTP port")
@click.option("--store-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding uploaded files")
@click.option("--thumbnail-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding generated thumbnails")
@click.option("--ftp/--no-ftp", "ftp_enabled", default=None,
              help="Start the FTP gateway alongside the HTTP API")
@click.option("--thumbnails/--no-thumbnails", "thumbnails_enabled", default=None,
              help="Generate thumbnails for uploaded images")
def serve(host, port, store_dir, thumbnail_dir, ftp_enabled, thumbnails_enabled):
    """Start the HTTP API (and the FTP gateway unless disabled)"""
    import uvicorn

    from filestore_api.main import create_app

    settings = _settings_with_overrides(
        http_host=host,
        http_port=port,
        store_dir=store_dir,
        thumbnail_dir=thumbnail_dir,
        ftp_enabled=ftp_enabled,
        thumbnails_enabled=thumbnails_enabled,
    )
    configure_logging(settings.log_level)

    app = create_app(settings)
    logger.info(f"HTTP server starting on http://{settings.http_host}:{settings.http_port}")
    if settings.ftp_enabled:
        logger.info(f"FTP server starting on {settings.ftp_host}:{settings.ftp_port}")
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_config=None)


@cli.command()
@click.option("--host", default=None, help="FTP bind address")
@click.option("--port", type=int, default=None, help="FTP port")
@click.option("--store-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding uploaded files")
def ftp(host, port, store_dir):
    """Run only the FTP gateway in the foreground"""
    from filestore_api.adapters.storage import FileStore
    from ftp_gateway.server import FTPGateway

    settings = _settings_with_overrides(ftp_host=host, ftp_port=port, store_dir=store_dir)
    configure_logging(settings.log_level)

    FileStore(settings.store_dir).ensure_root()
    FTPGateway(settings).serve_forever()


if __name__ == "__main__":
    cli()
