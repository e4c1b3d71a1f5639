import os
import requests
import zipfile
import tarfile
import shutil
import contextlib
from ..cli_logger import logger
from ..config import DOWNLOAD_TIMEOUT
from ..errors import ArchiveError, TransportError

CHUNK_SIZE = 1024 * 256

# -------------------- Helpers: safe paths & extraction --------------------

def _safe_join(base, *paths):
    """Safely join paths, preventing path traversal attacks."""
    base = os.path.abspath(base)
    final = os.path.abspath(os.path.join(base, *paths))
    if not final.startswith(base + os.sep) and final != base:
        raise ArchiveError(f"Unsafe path detected: {final}")
    return final

def _sanitized_name(name):
    """Relative path for a zip entry with root, '.' and '..' segments dropped."""
    parts = [part for part in name.replace("\\", "/").split("/") if part not in ("", ".", "..")]
    if not parts:
        return None
    return os.path.join(*parts)

def _discard(path):
    with contextlib.suppress(OSError):
        if os.path.isdir(path):
            shutil.rmtree(path)
        elif os.path.exists(path):
            os.remove(path)

def _extract_zip(filepath, dest_dir):
    with zipfile.ZipFile(filepath, "r") as zip_ref:
        for index, member in enumerate(zip_ref.infolist()):
            if member.filename.endswith("/"):
                continue
            relative = _sanitized_name(member.filename)
            if relative is None:
                continue
            target_path = _safe_join(dest_dir, relative)
            os.makedirs(os.path.dirname(target_path), exist_ok=True)
            logger.step_info(f"File {index} extracted to \"{target_path}\" ({member.file_size} bytes)", indent=2)
            with zip_ref.open(member, "r") as src, open(target_path, "wb") as out:
                shutil.copyfileobj(src, out)

def _contained_members(tar, dest_dir):
    """Yield tar members, rejecting any that would land or link outside ``dest_dir``."""
    for member in tar:
        _safe_join(dest_dir, member.name)
        if member.issym():
            _safe_join(dest_dir, os.path.dirname(member.name), member.linkname)
        elif member.islnk():
            _safe_join(dest_dir, member.linkname)
        yield member

def _extract_tgz(filepath, dest_dir):
    # Streaming mode decompresses and untars in a single pass.
    with tarfile.open(filepath, "r|gz") as tar:
        tar.extractall(path=dest_dir, members=_contained_members(tar, dest_dir))


_EXTRACTORS = {
    ".zip": _extract_zip,
    ".tgz": _extract_tgz,
}


def extract_archive(filepath, dest_dir):
    """Unpack ``filepath`` into ``dest_dir`` unless ``dest_dir`` already exists."""
    if os.path.exists(dest_dir):
        logger.info(f"  - {dest_dir} already exists. Skipping extraction.")
        return dest_dir

    extension = os.path.splitext(filepath)[1].lower()
    extractor = _EXTRACTORS.get(extension)
    if extractor is None:
        raise ArchiveError(f"Unsupported archive type for {os.path.basename(filepath)}")

    logger.info(f"  - Extracting {filepath} to {dest_dir}...")
    staging_dir = dest_dir + ".partial"
    _discard(staging_dir)
    os.makedirs(staging_dir)
    try:
        extractor(filepath, staging_dir)
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as e:
        _discard(staging_dir)
        raise ArchiveError(f"Failed to extract {filepath}: {e}") from e
    except BaseException:
        _discard(staging_dir)
        raise

    os.replace(staging_dir, dest_dir)
    logger.success(f"Successfully extracted to {dest_dir}")
    return dest_dir

# -------------------- Download --------------------

def _content_length(response, url):
    header = response.headers.get("content-length")
    if header is None:
        raise TransportError(f"Missing Content-Length header in response from {url}")
    try:
        return int(header)
    except ValueError:
        raise TransportError(f"Invalid Content-Length {header!r} in response from {url}") from None

def download(url, target, timeout=DOWNLOAD_TIMEOUT):
    """Fetch ``url`` into ``target``; an existing ``target`` is a cache hit."""
    if os.path.exists(target):
        logger.info(f"  - Using cached {target}")
        return target

    os.makedirs(os.path.dirname(os.path.abspath(target)), exist_ok=True)
    temp_filepath = target + ".tmp"
    filename = os.path.basename(target)
    logger.info(f"  - Downloading {url} into {target}")

    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            expected = _content_length(r, url)
            read_len = 0
            with open(temp_filepath, "wb") as f:
                # raw bytes, so the count matches Content-Length even under Content-Encoding
                chunks = logger.progress(
                    r.raw.stream(CHUNK_SIZE, decode_content=False),
                    description=f"Downloading {filename}",
                    total=expected,
                )
                for chunk in chunks:
                    if chunk:  # keep-alive chunks may be empty
                        f.write(chunk)
                        read_len += len(chunk)
        if read_len != expected:
            raise TransportError(
                f"Truncated download from {url}: read {read_len} bytes, expected {expected}"
            )
    except requests.exceptions.RequestException as e:
        _discard(temp_filepath)
        raise TransportError(f"Failed to download {url}: {e}") from e
    except BaseException:
        _discard(temp_filepath)
        raise

    # Atomic rename
    os.replace(temp_filepath, target)
    return target
