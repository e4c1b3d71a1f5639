import os
from dataclasses import dataclass
from typing import Optional

import toml
from packaging.version import Version, InvalidVersion

from .cli_logger import logger
from .errors import ConfigurationError

CONFIG_FILE = "ortbuilder.toml"

# Pinned onnxruntime release. Changing it invalidates every committed binding.
ORT_VERSION = "1.11.1"
ORT_RELEASE_BASE_URL = "https://github.com/microsoft/onnxruntime/releases/download"
ORT_REPO_URL = "https://github.com/microsoft/onnxruntime"
# Subdirectory of the output directory the prebuilt archives are extracted into.
ORT_PREBUILT_EXTRACT_DIR = "onnxruntime"
DOWNLOAD_TIMEOUT = 300

# cargo-ndk defaults to 21, the library must be built for the same level it is linked against
ANDROID_API_LEVEL = 27
ANDROID_PREBUILT_BASE_URL = "http://s3-de-central.profitbricks.com/xayn-yellow-bert/onnxruntime"

ENV_STRATEGY = "ORT_STRATEGY"
ENV_SYSTEM_LIB_LOCATION = "ORT_LIB_LOCATION"
ENV_GPU = "ORT_USE_CUDA"
ENV_ANDROID_SDK = "ANDROID_SDK_HOME"
ENV_ANDROID_NDK = "ANDROID_NDK_HOME"
ENV_ANDROID_NNAPI = "ANDROID_NNAPI"
ENV_TARGET_OS = "CARGO_CFG_TARGET_OS"
ENV_TARGET_ARCH = "CARGO_CFG_TARGET_ARCH"
ENV_OUT_DIR = "OUT_DIR"

# Signals that change which library ends up linked.
RERUN_ENV_SIGNALS = (ENV_STRATEGY, ENV_GPU, ENV_SYSTEM_LIB_LOCATION)


def load_config(path="."):
    """Read ortbuilder.toml from ``path``; a missing file yields an empty dict."""
    config_path = os.path.join(path, CONFIG_FILE)
    if not os.path.exists(config_path):
        return {}
    logger.info(f"Loading configuration from {config_path}")
    try:
        with open(config_path, "r") as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        logger.error(f"Error decoding TOML file at {config_path}: {e}")
        raise ConfigurationError(f"Invalid configuration file {config_path}: {e}") from e


@dataclass(frozen=True)
class Settings:
    """Pinned versions, endpoints and cache locations for one build."""

    out_dir: str
    ort_version: str = ORT_VERSION
    release_base_url: str = ORT_RELEASE_BASE_URL
    repo_url: str = ORT_REPO_URL
    extract_dir_name: str = ORT_PREBUILT_EXTRACT_DIR
    download_timeout: int = DOWNLOAD_TIMEOUT
    android_api_level: int = ANDROID_API_LEVEL
    android_prebuilt_base_url: Optional[str] = ANDROID_PREBUILT_BASE_URL

    @classmethod
    def from_config(cls, conf, out_dir):
        ort = conf.get("onnxruntime", {})
        android = conf.get("android", {})

        version = str(ort.get("version", ORT_VERSION))
        try:
            Version(version)
        except InvalidVersion as e:
            raise ConfigurationError(f"Invalid onnxruntime version {version!r} in {CONFIG_FILE}") from e

        try:
            api_level = int(android.get("api_level", ANDROID_API_LEVEL))
            timeout = int(ort.get("download_timeout", DOWNLOAD_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric value in {CONFIG_FILE}: {e}") from e

        # An empty prebuilt URL disables the remote Android attempt.
        prebuilt_base_url = android.get("prebuilt_base_url", ANDROID_PREBUILT_BASE_URL) or None

        return cls(
            out_dir=out_dir,
            ort_version=version,
            release_base_url=ort.get("release_base_url", ORT_RELEASE_BASE_URL).rstrip("/"),
            repo_url=ort.get("repo_url", ORT_REPO_URL),
            download_timeout=timeout,
            android_api_level=api_level,
            android_prebuilt_base_url=prebuilt_base_url.rstrip("/") if prebuilt_base_url else None,
        )

    @property
    def extract_dir(self):
        return os.path.join(self.out_dir, self.extract_dir_name)

    @property
    def android_download_dir(self):
        return os.path.join(self.out_dir, f"{self.extract_dir_name}-download")

    @property
    def android_release_dir(self):
        return os.path.join(self.out_dir, f"{self.extract_dir_name}-release")

    @property
    def android_git_dir(self):
        return os.path.join(self.out_dir, f"{self.extract_dir_name}-git")


@dataclass(frozen=True)
class BuildEnvironment:
    """Environment signals captured once at the start of a build."""

    target_os: str
    target_arch: str
    out_dir: str
    strategy: Optional[str] = None
    lib_location: Optional[str] = None
    use_cuda: Optional[str] = None
    android_sdk: Optional[str] = None
    android_ndk: Optional[str] = None
    android_nnapi: Optional[str] = None

    @classmethod
    def from_environ(cls, environ=None, target_os=None, target_arch=None, out_dir=None):
        """Capture the build signals; explicit arguments win over the environment."""
        if environ is None:
            environ = os.environ

        def required(value, name):
            value = value or environ.get(name)
            if not value:
                raise ConfigurationError(f"Missing required environment variable {name}")
            return value

        return cls(
            target_os=required(target_os, ENV_TARGET_OS).lower(),
            target_arch=required(target_arch, ENV_TARGET_ARCH).lower(),
            out_dir=required(out_dir, ENV_OUT_DIR),
            strategy=environ.get(ENV_STRATEGY),
            lib_location=environ.get(ENV_SYSTEM_LIB_LOCATION),
            use_cuda=environ.get(ENV_GPU),
            android_sdk=environ.get(ENV_ANDROID_SDK),
            android_ndk=environ.get(ENV_ANDROID_NDK),
            android_nnapi=environ.get(ENV_ANDROID_NNAPI),
        )

    @property
    def is_android(self):
        return self.target_os == "android"

    @property
    def with_nnapi(self):
        return self.android_nnapi is not None
