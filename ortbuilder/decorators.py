import functools
import click
import sys
from .cli_logger import logger
from .errors import OrtBuildError

def handle_exceptions(func):
    """A decorator that logs failures of CLI commands and exits non-zero."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.Abort:
            logger.warning("\nCommand aborted by user.")
            sys.exit(1)
        except OrtBuildError as e:
            logger.error(f"Error: {e}")
            logger.exception(*sys.exc_info())
            sys.exit(1)
        except click.ClickException:
            raise
        except Exception as e:
            logger.error(f"\nAn unexpected error occurred: {e}")
            logger.exception(*sys.exc_info())
            sys.exit(1)
    return wrapper
