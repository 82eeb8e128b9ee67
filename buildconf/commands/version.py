import click
import importlib.metadata
from ..cli_logger import logger

@click.command()
def version():
    """Print the version of buildconf."""
    try:
        ver = importlib.metadata.version("buildconf")
        logger.info(f"buildconf version {ver}")
    except importlib.metadata.PackageNotFoundError:
        logger.error("Error: Could not determine the version of buildconf. Is it installed correctly?")
