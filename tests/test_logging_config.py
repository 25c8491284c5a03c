from __future__ import annotations

import logging
import tempfile
import unittest
from pathlib import Path

from mockwatch import logging_config
from mockwatch.logging_config import LoggingConfig, configure_logging, parse_level


class LoggingConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root = logging.getLogger()
        self._saved_level = self.root.level
        self._saved_handlers = list(self.root.handlers)

    def tearDown(self) -> None:
        logging_config._remove_our_handlers(self.root)
        if hasattr(self.root, logging_config._CONFIGURED_FLAG_ATTR):
            delattr(self.root, logging_config._CONFIGURED_FLAG_ATTR)
        self.root.setLevel(self._saved_level)

    def _ours(self) -> list[logging.Handler]:
        return [h for h in self.root.handlers if getattr(h, logging_config._HANDLER_TAG_ATTR, False)]

    def test_parse_level(self) -> None:
        self.assertEqual(parse_level("debug"), logging.DEBUG)
        self.assertEqual(parse_level(" warning "), logging.WARNING)
        self.assertEqual(parse_level("nonsense"), logging.INFO)

    def test_configure_is_idempotent_unless_forced(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG"), force=True)
        configure_logging(LoggingConfig(level="ERROR"))

        self.assertEqual(len(self._ours()), 1)
        self.assertEqual(self.root.level, logging.DEBUG)

        configure_logging(LoggingConfig(level="ERROR"), force=True)
        self.assertEqual(len(self._ours()), 1)
        self.assertEqual(self.root.level, logging.ERROR)

    def test_foreign_handlers_are_left_alone(self) -> None:
        configure_logging(LoggingConfig(), force=True)

        for handler in self._saved_handlers:
            self.assertIn(handler, self.root.handlers)

    def test_log_file_receives_records(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "logs" / "mockwatch.log"
            configure_logging(LoggingConfig(console=False, log_file=log_file), force=True)

            logging.getLogger("mockwatch.test").info("generated %s", "mock_x_test.go")
            for handler in self._ours():
                handler.flush()

            self.assertIn("generated mock_x_test.go", log_file.read_text(encoding="utf-8"))
            logging_config._remove_our_handlers(self.root)


if __name__ == "__main__":
    unittest.main()
