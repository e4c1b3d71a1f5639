import click
from .. import config as config_module
from ..decorators import handle_exceptions
from ..triplet import PlatformTriplet, archive_descriptor


@click.command()
@click.pass_context
@click.argument("target_os")
@click.argument("target_arch")
@click.option("--gpu", is_flag=True, help="Resolve the CUDA build of the release.")
@handle_exceptions
def triplet(ctx, target_os, target_arch, gpu):
    """Show the release archive used for TARGET_OS and TARGET_ARCH."""
    conf = config_module.load_config(path=ctx.obj["path"])
    settings = config_module.Settings.from_config(conf, out_dir=".")
    descriptor = archive_descriptor(
        PlatformTriplet.parse(target_os, target_arch, "1" if gpu else None),
        settings.ort_version,
        settings.release_base_url,
    )
    click.echo(descriptor.file_name)
    click.echo(descriptor.url)
