"""Mapping of target platforms onto upstream's prebuilt archive names.

Upstream does not name its release archives consistently, so the tokens are
kept in an explicit table rather than derived from the parts.
"""
from dataclasses import dataclass
from enum import Enum

from .config import ENV_STRATEGY, ENV_SYSTEM_LIB_LOCATION
from .errors import ConfigurationError


class Os(Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported os: {value}") from None

    @property
    def archive_extension(self):
        return "zip" if self is Os.WINDOWS else "tgz"


class Architecture(Enum):
    X86 = "x86"
    X86_64 = "x86_64"
    ARM = "arm"
    ARM64 = "aarch64"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported architecture: {value}") from None


class Accelerator(Enum):
    NONE = "none"
    GPU = "gpu"

    @classmethod
    def parse(cls, value):
        if value and value.lower() in ("1", "yes", "true", "on"):
            return cls.GPU
        return cls.NONE


# (os, arch, accelerator) -> token used in the release file name
_PREBUILT_TOKENS = {
    # onnxruntime-win-x86-1.8.1.zip
    (Os.WINDOWS, Architecture.X86, Accelerator.NONE): "win-x86",
    (Os.WINDOWS, Architecture.X86_64, Accelerator.NONE): "win-x64",
    (Os.WINDOWS, Architecture.ARM, Accelerator.NONE): "win-arm",
    (Os.WINDOWS, Architecture.ARM64, Accelerator.NONE): "win-arm64",
    # onnxruntime-linux-x64-1.8.1.tgz
    (Os.LINUX, Architecture.X86_64, Accelerator.NONE): "linux-x64",
    # onnxruntime-osx-x64-1.8.1.tgz
    (Os.MACOS, Architecture.X86_64, Accelerator.NONE): "osx-x64",
    # onnxruntime-win-gpu-x64-1.8.1.zip, accelerator before the arch
    (Os.WINDOWS, Architecture.X86_64, Accelerator.GPU): "win-gpu-x64",
    # onnxruntime-linux-x64-gpu-1.8.1.tgz, accelerator after the arch
    (Os.LINUX, Architecture.X86_64, Accelerator.GPU): "linux-x64-gpu",
}


@dataclass(frozen=True)
class PlatformTriplet:
    os: Os
    arch: Architecture
    accelerator: Accelerator = Accelerator.NONE

    @classmethod
    def parse(cls, os_name, arch_name, use_cuda=None):
        return cls(Os.parse(os_name), Architecture.parse(arch_name), Accelerator.parse(use_cuda))

    def __str__(self):
        return f"{self.os.name}/{self.arch.name}/{self.accelerator.name}"


def resolve_token(triplet):
    """Return upstream's naming token for ``triplet``."""
    try:
        return _PREBUILT_TOKENS[(triplet.os, triplet.arch, triplet.accelerator)]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported prebuilt triplet: {triplet}. "
            f"Please use {ENV_STRATEGY}=system and {ENV_SYSTEM_LIB_LOCATION}=/path/to/onnxruntime"
        ) from None


def supported_triplets():
    return list(_PREBUILT_TOKENS)


@dataclass(frozen=True)
class ArchiveDescriptor:
    file_name: str
    url: str
    extension: str

    @property
    def stem(self):
        return self.file_name[:-len(self.extension) - 1]


def archive_descriptor(triplet, version, base_url):
    """Describe the release archive for ``triplet`` at ``version``."""
    extension = triplet.os.archive_extension
    file_name = f"onnxruntime-{resolve_token(triplet)}-{version}.{extension}"
    return ArchiveDescriptor(
        file_name=file_name,
        url=f"{base_url}/v{version}/{file_name}",
        extension=extension,
    )
