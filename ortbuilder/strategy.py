from enum import Enum

from .builder import setup_android
from .cli_logger import logger
from .config import ENV_STRATEGY, ENV_SYSTEM_LIB_LOCATION
from .downloader import prepare_prebuilt_dir
from .errors import ConfigurationError, UnsupportedStrategyError
from .layout import ReleaseLayout


class Strategy(Enum):
    DOWNLOAD = "download"
    SYSTEM = "system"
    COMPILE = "compile"


def select_strategy(build_env):
    """Pick the acquisition strategy from ``ORT_STRATEGY`` and the target OS."""
    value = build_env.strategy
    if value is None:
        # Android has no upstream release archive, it is compiled (or fetched prebuilt) instead.
        return Strategy.COMPILE if build_env.is_android else Strategy.DOWNLOAD
    try:
        return Strategy(value)
    except ValueError:
        raise ConfigurationError(f"Unknown value {value!r} for {ENV_STRATEGY}") from None


def prepare_library_dir(settings, build_env):
    """Return the validated release layout the build should link against."""
    strategy = select_strategy(build_env)
    logger.info(f"strategy: {strategy.value}")

    if strategy is Strategy.DOWNLOAD:
        return prepare_prebuilt_dir(settings, build_env)

    if strategy is Strategy.SYSTEM:
        if not build_env.lib_location:
            raise ConfigurationError(
                f"{ENV_STRATEGY}=system requires {ENV_SYSTEM_LIB_LOCATION} to point to an onnxruntime directory"
            )
        logger.info(f"  - Using system onnxruntime at {build_env.lib_location}")
        return ReleaseLayout(build_env.lib_location).validate()

    if build_env.is_android:
        outcome = setup_android(settings, build_env)
        logger.info(f"  - Android library {outcome.provenance.value}: {outcome.layout.root}")
        return outcome.layout

    raise UnsupportedStrategyError(
        f"{ENV_STRATEGY}=compile is not supported for {build_env.target_os} yet, "
        f"use download or system"
    )
