"""Tests for logging setup."""

import logging
import os
import shutil
import tempfile
import unittest
from unittest import mock

from AmbientKit.core import setup_logging


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.pkg_logger = logging.getLogger("ambient_materials")
        self._saved_handlers = list(self.pkg_logger.handlers)
        self._saved_level = self.pkg_logger.level

    def tearDown(self):
        for h in list(self.pkg_logger.handlers):
            if h not in self._saved_handlers:
                self.pkg_logger.removeHandler(h)
                h.close()
        self.pkg_logger.setLevel(self._saved_level)
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_embedded_mode_only_touches_package_logger(self):
        root = logging.getLogger()
        sentinel = logging.NullHandler()
        root.addHandler(sentinel)
        try:
            before = list(root.handlers)
            log_file = os.path.join(self.tmpdir, "logs", "load.log")
            setup_logging("DEBUG", log_file)
            self.assertEqual(root.handlers, before)
            self.assertEqual(self.pkg_logger.level, logging.DEBUG)
            files = [getattr(h, "baseFilename", None) for h in self.pkg_logger.handlers]
            self.assertIn(os.path.abspath(log_file), files)
        finally:
            root.removeHandler(sentinel)

    def test_same_file_not_added_twice(self):
        root = logging.getLogger()
        sentinel = logging.NullHandler()
        root.addHandler(sentinel)
        try:
            log_file = os.path.join(self.tmpdir, "load.log")
            setup_logging("INFO", log_file)
            setup_logging("INFO", log_file)
            files = [getattr(h, "baseFilename", None) for h in self.pkg_logger.handlers]
            self.assertEqual(files.count(os.path.abspath(log_file)), 1)
        finally:
            root.removeHandler(sentinel)

    def test_invalid_level_falls_back_to_info(self):
        with mock.patch("logging.basicConfig") as basic:
            with self.assertLogs("ambient_materials", level="WARNING"):
                setup_logging("LOUD", force=True)
        self.assertEqual(basic.call_args.kwargs["level"], logging.INFO)


if __name__ == "__main__":
    unittest.main(verbosity=2)
