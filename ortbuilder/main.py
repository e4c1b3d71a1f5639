import click
from .commands import *


@click.group()
@click.option("--path", "-p", default=".", help="Path to the directory holding ortbuilder.toml.")
@click.pass_context
def cli(ctx, path):
    """Prepare the onnxruntime native library for a build."""
    ctx.obj = {"path": path}

cli.add_command(prepare)
cli.add_command(triplet)
cli.add_command(log)
cli.add_command(version)

if __name__ == '__main__':
    cli()
