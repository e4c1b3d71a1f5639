import os
import tempfile
import toml
import unittest
from unittest.mock import patch
from click.testing import CliRunner
from ortbuilder import config
from ortbuilder.main import cli


class TestMain(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.test_dir = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def _system_library(self):
        root = os.path.join(self.test_dir, "system-ort")
        for sub, name in (("lib", "libonnxruntime.so"), ("include", "onnxruntime_c_api.h")):
            os.makedirs(os.path.join(root, sub))
            open(os.path.join(root, sub, name), "w").close()
        return root

    def test_triplet(self):
        result = self.runner.invoke(cli, ["--path", self.test_dir, "triplet", "linux", "x86_64", "--gpu"])
        self.assertEqual(result.exit_code, 0)
        lines = result.output.strip().splitlines()
        self.assertEqual(lines[-2], "onnxruntime-linux-x64-gpu-1.11.1.tgz")
        self.assertTrue(lines[-1].endswith("/v1.11.1/onnxruntime-linux-x64-gpu-1.11.1.tgz"))

    def test_triplet_uses_configured_version(self):
        with open(os.path.join(self.test_dir, config.CONFIG_FILE), "w") as f:
            toml.dump({"onnxruntime": {"version": "1.12.1"}}, f)
        result = self.runner.invoke(cli, ["--path", self.test_dir, "triplet", "windows", "aarch64"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("onnxruntime-win-arm64-1.12.1.zip", result.output)

    @patch('ortbuilder.decorators.logger')
    def test_triplet_unsupported(self, mock_logger):
        result = self.runner.invoke(cli, ["--path", self.test_dir, "triplet", "macos", "aarch64"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unsupported prebuilt triplet", mock_logger.error.call_args[0][0])

    @patch('ortbuilder.strategy.logger')
    def test_prepare_system(self, mock_logger):
        root = self._system_library()
        env = {
            "ORT_STRATEGY": "system",
            "ORT_LIB_LOCATION": root,
            "CARGO_CFG_TARGET_OS": "linux",
            "CARGO_CFG_TARGET_ARCH": "x86_64",
            "OUT_DIR": self.test_dir,
        }
        result = self.runner.invoke(cli, ["--path", self.test_dir, "prepare"], env=env)
        self.assertEqual(result.exit_code, 0)
        self.assertIn(f"Lib directory: {os.path.join(root, 'lib')}", result.output)

        result = self.runner.invoke(cli, ["--path", self.test_dir, "prepare", "--format", "cargo"], env=env)
        self.assertEqual(result.exit_code, 0)
        self.assertIn("cargo:rustc-link-lib=onnxruntime", result.output)
        self.assertIn(f"cargo:rustc-link-search=native={os.path.join(root, 'lib')}", result.output)

    @patch('ortbuilder.decorators.logger')
    @patch('ortbuilder.strategy.logger')
    def test_prepare_system_without_location(self, mock_strategy_logger, mock_logger):
        env = {
            "ORT_STRATEGY": "system",
            "ORT_LIB_LOCATION": None,
            "CARGO_CFG_TARGET_OS": "linux",
            "CARGO_CFG_TARGET_ARCH": "x86_64",
            "OUT_DIR": self.test_dir,
        }
        result = self.runner.invoke(cli, ["--path", self.test_dir, "prepare"], env=env)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ORT_LIB_LOCATION", mock_logger.error.call_args[0][0])

    @patch('importlib.metadata.version', return_value="0.1.0")
    def test_version(self, mock_version):
        result = self.runner.invoke(cli, ["version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("ortbuilder 0.1.0 (onnxruntime 1.11.1)", result.output)

    def test_log_list(self):
        result = self.runner.invoke(cli, ["log", "--list"])
        self.assertEqual(result.exit_code, 0)

    @patch('ortbuilder.decorators.logger')
    def test_prepare_missing_target(self, mock_logger):
        env = {"CARGO_CFG_TARGET_OS": None, "CARGO_CFG_TARGET_ARCH": None, "OUT_DIR": self.test_dir}
        result = self.runner.invoke(cli, ["--path", self.test_dir, "prepare"], env=env)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("CARGO_CFG_TARGET_OS", mock_logger.error.call_args[0][0])


if __name__ == "__main__":
    unittest.main()
