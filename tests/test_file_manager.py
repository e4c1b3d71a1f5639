import gzip
import io
import os
import tarfile
import tempfile
import unittest
import zipfile
from unittest.mock import patch, MagicMock

import requests

from ortbuilder.errors import ArchiveError, TransportError
from ortbuilder.utils.file_manager import CHUNK_SIZE, download, extract_archive


def _passthrough_progress(chunks, **kwargs):
    return chunks


def _mock_response(chunks, content_length):
    response = MagicMock()
    response.headers = {} if content_length is None else {"content-length": content_length}
    response.raw.stream.return_value = chunks
    return response


@patch('ortbuilder.utils.file_manager.logger')
class TestExtractArchive(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name
        self.dest = os.path.join(self.root, "out", "extract")

    def tearDown(self):
        self.tmp.cleanup()

    def _write_zip(self, entries):
        path = os.path.join(self.root, "archive.zip")
        with zipfile.ZipFile(path, "w") as zf:
            for name, data in entries.items():
                zf.writestr(name, data)
        return path

    def test_zip_traversal_stays_inside_destination(self, mock_logger):
        path = self._write_zip({
            "../evil.txt": b"evil",
            "../../etc/evil2.txt": b"evil",
            "/abs.txt": b"abs",
            "pkg/": b"",
            "pkg/lib/libonnxruntime.so": b"lib",
        })
        extract_archive(path, self.dest)

        self.assertFalse(os.path.exists(os.path.join(self.root, "out", "evil.txt")))
        self.assertFalse(os.path.exists(os.path.join(self.root, "evil.txt")))
        self.assertTrue(os.path.isfile(os.path.join(self.dest, "evil.txt")))
        self.assertTrue(os.path.isfile(os.path.join(self.dest, "etc", "evil2.txt")))
        self.assertTrue(os.path.isfile(os.path.join(self.dest, "abs.txt")))
        with open(os.path.join(self.dest, "pkg", "lib", "libonnxruntime.so"), "rb") as f:
            self.assertEqual(f.read(), b"lib")

        for dirpath, _, filenames in os.walk(self.root):
            for name in filenames:
                full = os.path.abspath(os.path.join(dirpath, name))
                if full != os.path.abspath(path):
                    self.assertTrue(full.startswith(os.path.abspath(self.dest) + os.sep), full)

    def test_tgz(self, mock_logger):
        path = os.path.join(self.root, "archive.tgz")
        with tarfile.open(path, "w:gz") as tar:
            data = b"header"
            info = tarfile.TarInfo("onnxruntime-linux-x64-1.11.1/include/onnxruntime_c_api.h")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))

        extract_archive(path, self.dest)
        with open(os.path.join(self.dest, "onnxruntime-linux-x64-1.11.1", "include", "onnxruntime_c_api.h"), "rb") as f:
            self.assertEqual(f.read(), b"header")
        self.assertFalse(os.path.exists(self.dest + ".partial"))

    def test_tgz_traversal_is_rejected(self, mock_logger):
        path = os.path.join(self.root, "archive.tgz")
        with tarfile.open(path, "w:gz") as tar:
            info = tarfile.TarInfo("../evil.txt")
            info.size = 4
            tar.addfile(info, io.BytesIO(b"evil"))

        with self.assertRaises(ArchiveError):
            extract_archive(path, self.dest)
        self.assertFalse(os.path.exists(os.path.join(self.root, "out", "evil.txt")))
        self.assertFalse(os.path.exists(self.dest))

    def test_unsupported_extension(self, mock_logger):
        path = os.path.join(self.root, "archive.tar.bz2")
        open(path, "wb").close()
        with self.assertRaises(ArchiveError):
            extract_archive(path, self.dest)
        self.assertFalse(os.path.exists(self.dest))

    def test_corrupt_zip_leaves_nothing_behind(self, mock_logger):
        path = os.path.join(self.root, "archive.zip")
        with open(path, "wb") as f:
            f.write(b"definitely not a zip file")
        with self.assertRaises(ArchiveError):
            extract_archive(path, self.dest)
        self.assertFalse(os.path.exists(self.dest))
        self.assertFalse(os.path.exists(self.dest + ".partial"))

    @patch('zipfile.ZipFile')
    def test_existing_destination_is_skipped(self, mock_zipfile, mock_logger):
        os.makedirs(self.dest)
        self.assertEqual(extract_archive(os.path.join(self.root, "archive.zip"), self.dest), self.dest)
        mock_zipfile.assert_not_called()


@patch('ortbuilder.utils.file_manager.logger')
class TestDownload(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.target = os.path.join(self.tmp.name, "cache", "archive.tgz")

    def tearDown(self):
        self.tmp.cleanup()

    @patch('requests.get')
    def test_download_writes_file(self, mock_get, mock_logger):
        mock_logger.progress.side_effect = _passthrough_progress
        mock_get.return_value.__enter__.return_value = _mock_response([b"te", b"", b"st"], "4")

        self.assertEqual(download("http://test.com/archive.tgz", self.target, timeout=5), self.target)
        mock_get.assert_called_once_with("http://test.com/archive.tgz", stream=True, timeout=5)
        with open(self.target, "rb") as f:
            self.assertEqual(f.read(), b"test")
        self.assertFalse(os.path.exists(self.target + ".tmp"))

    @patch('requests.get')
    def test_content_encoding_is_not_decoded(self, mock_get, mock_logger):
        mock_logger.progress.side_effect = _passthrough_progress
        body = gzip.compress(b"archive bytes" * 64)
        response = _mock_response([body[:10], body[10:]], str(len(body)))
        response.headers["content-encoding"] = "gzip"
        mock_get.return_value.__enter__.return_value = response

        download("http://test.com/archive.tgz", self.target)
        response.raw.stream.assert_called_once_with(CHUNK_SIZE, decode_content=False)
        response.iter_content.assert_not_called()
        with open(self.target, "rb") as f:
            self.assertEqual(f.read(), body)

    @patch('requests.get')
    def test_length_mismatch(self, mock_get, mock_logger):
        mock_logger.progress.side_effect = _passthrough_progress
        mock_get.return_value.__enter__.return_value = _mock_response([b"te"], "4")

        with self.assertRaises(TransportError) as ctx:
            download("http://test.com/archive.tgz", self.target)
        self.assertIn("http://test.com/archive.tgz", str(ctx.exception))
        self.assertFalse(os.path.exists(self.target))
        self.assertFalse(os.path.exists(self.target + ".tmp"))

    @patch('requests.get')
    def test_missing_content_length(self, mock_get, mock_logger):
        mock_logger.progress.side_effect = _passthrough_progress
        mock_get.return_value.__enter__.return_value = _mock_response([b"test"], None)

        with self.assertRaises(TransportError):
            download("http://test.com/archive.tgz", self.target)
        self.assertFalse(os.path.exists(self.target))

    @patch('requests.get')
    def test_transport_error(self, mock_get, mock_logger):
        mock_get.side_effect = requests.exceptions.ConnectionError("connection refused")

        with self.assertRaises(TransportError) as ctx:
            download("http://test.com/archive.tgz", self.target)
        self.assertIn("http://test.com/archive.tgz", str(ctx.exception))
        self.assertFalse(os.path.exists(self.target))

    @patch('requests.get')
    def test_http_error_status(self, mock_get, mock_logger):
        response = _mock_response([], "0")
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Client Error")
        mock_get.return_value.__enter__.return_value = response

        with self.assertRaises(TransportError):
            download("http://test.com/archive.tgz", self.target)

    @patch('requests.get')
    def test_existing_target_is_cache_hit(self, mock_get, mock_logger):
        os.makedirs(os.path.dirname(self.target))
        with open(self.target, "wb") as f:
            f.write(b"cached")

        download("http://test.com/archive.tgz", self.target)
        mock_get.assert_not_called()


if __name__ == '__main__':
    unittest.main()
