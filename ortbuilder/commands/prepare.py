import click
from .. import config as config_module
from ..config import ENV_TARGET_OS, ENV_TARGET_ARCH, ENV_OUT_DIR
from ..decorators import handle_exceptions
from ..linkage import binding_clang_args, cargo_directives
from ..strategy import prepare_library_dir


@click.command()
@click.pass_context
@click.option("--target-os", envvar=ENV_TARGET_OS, default=None, help="Target operating system (e.g., linux, windows, android).")
@click.option("--target-arch", envvar=ENV_TARGET_ARCH, default=None, help="Target architecture (e.g., x86_64, aarch64).")
@click.option("--out-dir", envvar=ENV_OUT_DIR, default=None, help="Directory to download, extract and build into.")
@click.option("--format", "output_format", type=click.Choice(["plain", "cargo", "clang"]), default="plain",
              help="Print the directories, cargo link directives, or binding generator flags.")
@handle_exceptions
def prepare(ctx, target_os, target_arch, out_dir, output_format):
    """Prepare an onnxruntime lib/ and include/ directory for the target."""
    conf = config_module.load_config(path=ctx.obj["path"])
    build_env = config_module.BuildEnvironment.from_environ(
        target_os=target_os, target_arch=target_arch, out_dir=out_dir
    )
    settings = config_module.Settings.from_config(conf, build_env.out_dir)

    layout = prepare_library_dir(settings, build_env)

    if output_format == "cargo":
        for line in cargo_directives(layout):
            click.echo(line)
    elif output_format == "clang":
        for arg in binding_clang_args(layout, build_env.target_os, build_env.target_arch, build_env.android_ndk):
            click.echo(arg)
    else:
        click.echo(f"Include directory: {layout.include_dir}")
        click.echo(f"Lib directory: {layout.lib_dir}")
