import os
import shutil
from dataclasses import dataclass
from enum import Enum

from .cli_logger import logger
from .config import ENV_ANDROID_SDK, ENV_ANDROID_NDK, ENV_ANDROID_NNAPI
from .errors import ConfigurationError, LayoutError, SubprocessError, TransportError
from .layout import ReleaseLayout
from .utils import download, prepare_git_repository, run_shell_command


ANDROID_OS = "android"

# Target architectures and the ABI names build.sh expects for them
ANDROID_ABIS = {
    "x86": "x86",
    "x86_64": "x86_64",
    "arm": "armeabi-v7a",
    "aarch64": "arm64-v8a",
}

NNAPI_MIN_API_LEVEL = 27
BUILD_SCRIPT = "build.sh"
LIBRARY_FILE = "libonnxruntime.so"

# Headers of an official release, relative to include/onnxruntime/core in the
# source tree. The binding generator includes exactly these, keep them in sync.
# https://github.com/microsoft/onnxruntime/blob/f2ca43fe0d6ab1156bb43128e76c283bd21e46c5/tools/ci_build/github/linux/copy_strip_binary.sh
RELEASE_HEADERS = (
    os.path.join("session", "onnxruntime_c_api.h"),
    os.path.join("session", "onnxruntime_cxx_api.h"),
    os.path.join("session", "onnxruntime_cxx_inline.h"),
    os.path.join("providers", "cpu", "cpu_provider_factory.h"),
    os.path.join("session", "onnxruntime_session_options_config_keys.h"),
    os.path.join("session", "onnxruntime_run_options_config_keys.h"),
    os.path.join("framework", "provider_options.h"),
)
NNAPI_HEADERS = (
    os.path.join("providers", "nnapi", "nnapi_provider_factory.h"),
)


def release_headers(with_nnapi=False):
    if with_nnapi:
        return RELEASE_HEADERS + NNAPI_HEADERS
    return RELEASE_HEADERS


@dataclass(frozen=True)
class AndroidTarget:
    arch: str
    api_level: int
    os: str = ANDROID_OS

    @classmethod
    def parse(cls, arch, api_level):
        if arch not in ANDROID_ABIS:
            raise ConfigurationError(f"Unsupported android architecture: {arch}")
        return cls(arch=arch, api_level=api_level)

    @property
    def abi(self):
        return ANDROID_ABIS[self.arch]

    def version_name(self, ort_version):
        return f"{self.os}-{self.arch}-lvl-{self.api_level}-v{ort_version}"


class Provenance(Enum):
    FETCHED = "fetched"
    COMPILED = "compiled"


@dataclass(frozen=True)
class AndroidOutcome:
    provenance: Provenance
    layout: ReleaseLayout


@dataclass(frozen=True)
class AndroidBuildOptions:
    """Arguments of one ``build.sh`` cross-compilation run."""

    sdk_path: str
    ndk_path: str
    abi: str
    api_level: int
    use_nnapi: bool = False
    parallel: int = 0
    config: str = "Release"

    def validate(self):
        if self.use_nnapi and self.api_level < NNAPI_MIN_API_LEVEL:
            raise ConfigurationError(
                f"{ENV_ANDROID_NNAPI} requires an api level of at least {NNAPI_MIN_API_LEVEL}, "
                f"got {self.api_level}"
            )
        return self

    def to_command(self):
        command = [
            "sh", BUILD_SCRIPT,
            "--android",
            "--android_sdk_path", self.sdk_path,
            "--android_ndk_path", self.ndk_path,
            "--android_abi", self.abi,
            "--android_api", str(self.api_level),
        ]
        if self.use_nnapi:
            command.append("--use_nnapi")
        command += [
            "--parallel", str(self.parallel),
            # x86_64 tests would need an emulator
            "--skip_tests",
            "--build_shared_lib",
            "--config", self.config,
        ]
        return command


def _require(value, name):
    if not value:
        raise ConfigurationError(f"Missing required environment variable {name}")
    return value


def build_options(target, build_env):
    return AndroidBuildOptions(
        sdk_path=_require(build_env.android_sdk, ENV_ANDROID_SDK),
        ndk_path=_require(build_env.android_ndk, ENV_ANDROID_NDK),
        abi=target.abi,
        api_level=target.api_level,
        use_nnapi=build_env.with_nnapi,
    ).validate()


# -------------------- Remote prebuilt --------------------

def download_prebuilt(target, settings, with_nnapi=False):
    """Fetch a prebuilt library and headers from the project bucket; raises TransportError."""
    version_name = target.version_name(settings.ort_version)
    version_dir = os.path.join(settings.android_download_dir, version_name)
    base = f"{settings.android_prebuilt_base_url}/{version_name}"

    staging_dir = version_dir + ".partial"
    shutil.rmtree(staging_dir, ignore_errors=True)
    staged = ReleaseLayout(staging_dir)

    logger.info(f"  - Trying prebuilt {version_name} from {settings.android_prebuilt_base_url}")
    try:
        # headers before the library, so a bucket without them fails before the large download
        for header in release_headers(with_nnapi):
            name = os.path.basename(header)
            download(f"{base}/include/{name}", os.path.join(staged.include_dir, name),
                     timeout=settings.download_timeout)
        download(f"{base}/{LIBRARY_FILE}", os.path.join(staged.lib_dir, LIBRARY_FILE),
                 timeout=settings.download_timeout)
    except TransportError:
        shutil.rmtree(staging_dir, ignore_errors=True)
        raise

    os.replace(staging_dir, version_dir)
    return ReleaseLayout(version_dir)


# -------------------- Compile from source --------------------

def build_android(workdir, options):
    """Run build.sh in ``workdir``; raises SubprocessError on a non-zero exit."""
    command = options.to_command()
    logger.info(f"  - Running {' '.join(command)}")
    lines, process = run_shell_command(command, stream_output=True, cwd=workdir)
    for line in lines:
        logger.step_info(line.rstrip(), indent=4)
    if process.returncode != 0:
        raise SubprocessError(
            f"{BUILD_SCRIPT} failed to build android library for abi {options.abi} "
            f"(Exit Code: {process.returncode})"
        )
    logger.success(f"  - {BUILD_SCRIPT} finished for {options.abi}")


def mimic_release_package(workdir, version_dir, with_nnapi=False):
    """Copy build.sh output into the layout of an official release archive."""
    build_dir = os.path.join(workdir, "build", "Android", "Release")
    include_source_base = os.path.join(workdir, "include", "onnxruntime", "core")

    staging_dir = version_dir + ".partial"
    shutil.rmtree(staging_dir, ignore_errors=True)
    staged = ReleaseLayout(staging_dir)
    os.makedirs(staged.lib_dir)
    os.makedirs(staged.include_dir)

    copies = [(os.path.join(build_dir, LIBRARY_FILE), os.path.join(staged.lib_dir, LIBRARY_FILE))]
    for header in release_headers(with_nnapi):
        copies.append((
            os.path.join(include_source_base, header),
            os.path.join(staged.include_dir, os.path.basename(header)),
        ))

    for src, dst in copies:
        if not os.path.isfile(src):
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise LayoutError(f"Expected build output {src} is missing")
        shutil.copyfile(src, dst)

    os.makedirs(os.path.dirname(os.path.abspath(version_dir)), exist_ok=True)
    os.replace(staging_dir, version_dir)
    return ReleaseLayout(version_dir)


def compile_target(target, settings, build_env):
    version_dir = os.path.join(settings.android_release_dir, target.version_name(settings.ort_version))
    # Configuration problems must surface before git or build.sh run.
    options = build_options(target, build_env)

    workdir = prepare_git_repository(settings.repo_url, settings.android_git_dir, f"v{settings.ort_version}")
    build_android(workdir, options)
    return mimic_release_package(workdir, version_dir, with_nnapi=options.use_nnapi)


# -------------------- Orchestration --------------------

def setup_android(settings, build_env):
    """
    Produce a release layout for an Android target.

    A cached result for the target's version name is reused as is. Otherwise
    the project's prebuilt bucket is tried first and any transport failure
    falls back to compiling upstream from source.
    """
    target = AndroidTarget.parse(build_env.target_arch, settings.android_api_level)
    version_name = target.version_name(settings.ort_version)
    logger.info(f"Preparing onnxruntime for {version_name}...")

    fetched_dir = os.path.join(settings.android_download_dir, version_name)
    if os.path.isdir(fetched_dir):
        logger.info(f"  - Using cached prebuilt at {fetched_dir}")
        return AndroidOutcome(Provenance.FETCHED, ReleaseLayout(fetched_dir).validate())

    compiled_dir = os.path.join(settings.android_release_dir, version_name)
    if os.path.isdir(compiled_dir):
        logger.info(f"  - Using cached build at {compiled_dir}")
        return AndroidOutcome(Provenance.COMPILED, ReleaseLayout(compiled_dir).validate())

    if settings.android_prebuilt_base_url:
        try:
            layout = download_prebuilt(target, settings, with_nnapi=build_env.with_nnapi)
            logger.success(f"  - Using prebuilt {version_name}")
            return AndroidOutcome(Provenance.FETCHED, layout.validate())
        except TransportError as e:
            logger.warning(f"Prebuilt {version_name} unavailable ({e}), compiling from source.")
    else:
        logger.info("  - No prebuilt location configured, compiling from source.")

    layout = compile_target(target, settings, build_env)
    logger.success(f"  - Built {version_name} at {layout.root}")
    return AndroidOutcome(Provenance.COMPILED, layout.validate())
