import click
import importlib.metadata
from ..cli_logger import logger
from ..config import ORT_VERSION

@click.command()
def version():
    """Print the version of ortbuilder and the pinned onnxruntime release."""
    try:
        ver = importlib.metadata.version("ortbuilder")
        click.echo(f"ortbuilder {ver} (onnxruntime {ORT_VERSION})")
    except importlib.metadata.PackageNotFoundError:
        logger.error("Error: Could not determine the version of ortbuilder. Is it installed correctly?")
