import os
from .cli_logger import logger
from .layout import ReleaseLayout
from .triplet import PlatformTriplet, resolve_token, archive_descriptor
from .utils import download, extract_archive


def prebuilt_archive(settings, build_env):
    """Describe the upstream release archive matching the build target."""
    triplet = PlatformTriplet.parse(build_env.target_os, build_env.target_arch, build_env.use_cuda)
    logger.info(f"  - Target triplet {triplet} resolves to '{resolve_token(triplet)}'")
    return archive_descriptor(triplet, settings.ort_version, settings.release_base_url)


def prepare_prebuilt_dir(settings, build_env):
    """
    Download and extract upstream's prebuilt release for the build target.

    The archive is kept in the output directory and extracted next to it, so
    a second run finds both on disk and does no network or extraction work.
    """
    descriptor = prebuilt_archive(settings, build_env)
    downloaded_file = os.path.join(settings.out_dir, descriptor.file_name)

    logger.info(f"  - Release archive: {descriptor.url}")
    download(descriptor.url, downloaded_file, timeout=settings.download_timeout)
    extract_archive(downloaded_file, settings.extract_dir)

    layout = ReleaseLayout(os.path.join(settings.extract_dir, descriptor.stem))
    logger.info(f"  - Prebuilt onnxruntime {settings.ort_version} ready at {layout.root}")
    return layout.validate()
