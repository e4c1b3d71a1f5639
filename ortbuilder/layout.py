import os
from dataclasses import dataclass

from .errors import LayoutError

LIBRARY_NAME = "onnxruntime"


@dataclass(frozen=True)
class ReleaseLayout:
    """A directory holding ``lib/`` and ``include/`` as upstream releases ship them."""

    root: str

    @property
    def lib_dir(self):
        return os.path.join(self.root, "lib")

    @property
    def include_dir(self):
        return os.path.join(self.root, "include")

    @property
    def session_include_dir(self):
        return os.path.join(self.include_dir, "onnxruntime", "core", "session")

    def validate(self):
        """Raise LayoutError unless both subdirectories exist and have content."""
        for path in (self.lib_dir, self.include_dir):
            if not os.path.isdir(path):
                raise LayoutError(f"Missing directory {path}")
            if not os.listdir(path):
                raise LayoutError(f"Directory {path} is empty")
        return self
