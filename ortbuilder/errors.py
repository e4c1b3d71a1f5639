class OrtBuildError(Exception):
    """Base error for preparing the onnxruntime library directory."""


class ConfigurationError(OrtBuildError):
    """An environment signal is missing or unrecognized, or the target cannot be served."""


class UnsupportedStrategyError(OrtBuildError):
    """The requested strategy exists but is not implemented for this target."""


class TransportError(OrtBuildError):
    """Downloading an artifact failed or returned a truncated body."""


class ArchiveError(OrtBuildError):
    """An archive has an unknown format or could not be unpacked."""


class SourceControlError(OrtBuildError):
    """Cloning, resolving or checking out the upstream repository failed."""


class SubprocessError(OrtBuildError):
    """An external command exited with a non-zero status."""


class LayoutError(OrtBuildError):
    """A release directory is missing its lib/ or include/ contents."""
