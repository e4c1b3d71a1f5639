import os
import sys

from .config import RERUN_ENV_SIGNALS
from .errors import ConfigurationError
from .layout import LIBRARY_NAME

# NDK sysroot subdirectory holding the per-target headers
NDK_TARGET_TRIPLES = {
    "x86": "i686-linux-android",
    "x86_64": "x86_64-linux-android",
    "arm": "arm-linux-androideabi",
    "aarch64": "aarch64-linux-android",
}


def cargo_directives(layout):
    lines = [
        f"cargo:rustc-link-lib={LIBRARY_NAME}",
        f"cargo:rustc-link-search=native={layout.lib_dir}",
    ]
    lines += [f"cargo:rerun-if-env-changed={name}" for name in RERUN_ENV_SIGNALS]
    return lines


def _ndk_host_tag():
    return "darwin-x86_64" if sys.platform == "darwin" else "linux-x86_64"


def binding_clang_args(layout, target_os, target_arch, ndk_home=None):
    """Search directories handed to the binding generator as -I flags."""
    args = [f"-I{layout.include_dir}", f"-I{layout.session_include_dir}"]
    if target_os != "android":
        return args

    if not ndk_home:
        raise ConfigurationError("Missing required environment variable ANDROID_NDK_HOME")
    ndk_target = NDK_TARGET_TRIPLES.get(target_arch)
    if ndk_target is None:
        raise ConfigurationError(f"Unknown android target '{target_arch}'")

    # Without the sysroot, clang cannot find stdlib.h for android targets.
    sysroot = os.path.join(ndk_home, "toolchains", "llvm", "prebuilt", _ndk_host_tag(), "sysroot")
    ndk_include = os.path.join(sysroot, "usr", "include")
    args.append(f"-I{ndk_include}")
    args.append(f"-I{os.path.join(ndk_include, ndk_target)}")
    return args
