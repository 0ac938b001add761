import os
import tempfile
import unittest
from unittest.mock import patch

import main as main_mod


class TestMain(unittest.TestCase):
    def test_parse_args_default(self):
        args = main_mod.parse_args([])
        self.assertEqual(args.config, main_mod.CONFIG_FILE)

    def test_parse_args_config(self):
        args = main_mod.parse_args(["--config", "/etc/openotp_exporter.yml"])
        self.assertEqual(args.config, "/etc/openotp_exporter.yml")

    def test_bad_config_exits(self):
        self.assertEqual(main_mod.main(["--config", "/nonexistent/config.yml"]), 1)

    @patch("main.setup_logging")
    @patch("main.uvicorn.run")
    def test_main_starts_server(self, mock_run, mock_setup_logging):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.yml")
            with open(path, "w") as f:
                f.write("api:\n  username: admin\n  password: pw\nexporter:\n  port: 9999\n")
            self.assertEqual(main_mod.main(["--config", path]), 0)
        mock_setup_logging.assert_called_once_with("info", None, False)
        _, kwargs = mock_run.call_args
        self.assertEqual(kwargs["host"], "0.0.0.0")
        self.assertEqual(kwargs["port"], 9999)


if __name__ == "__main__":
    unittest.main()
