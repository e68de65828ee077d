import io
import logging
import tempfile
import unittest
from pathlib import Path

from rr_mcp.log import LOGGER_NAME, error_log


class TestErrorLog(unittest.TestCase):
    def test_errors_reach_file_and_stream(self):
        stream = io.StringIO()
        with tempfile.TemporaryDirectory() as tmp:
            with error_log(Path(tmp), stream=stream) as log:
                log.info("server started")
                logging.getLogger("rr_mcp.script_runner").error("script failed")
            text = (Path(tmp) / "mcp_errors.log").read_text(encoding="utf-8")
        self.assertIn("script failed", text)
        self.assertNotIn("server started", text)
        self.assertIn("server started", stream.getvalue())

    def test_handlers_are_released(self):
        logger = logging.getLogger(LOGGER_NAME)
        before = list(logger.handlers)
        with tempfile.TemporaryDirectory() as tmp:
            with error_log(Path(tmp), stream=io.StringIO()):
                self.assertEqual(len(logger.handlers), len(before) + 2)
        self.assertEqual(logger.handlers, before)

    def test_creates_log_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "logs" / "nested"
            with error_log(target, stream=io.StringIO()) as log:
                log.warning("careful")
            self.assertTrue((target / "mcp_errors.log").is_file())

    def test_unusable_directory_is_reported_and_raised(self):
        logger = logging.getLogger(LOGGER_NAME)
        before = list(logger.handlers)
        stream = io.StringIO()
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "not-a-dir"
            blocker.write_text("", encoding="utf-8")
            with self.assertRaises(OSError):
                with error_log(blocker / "logs", stream=stream):
                    pass
        self.assertIn("CRITICAL", stream.getvalue())
        self.assertIn("cannot open error log", stream.getvalue())
        self.assertEqual(logger.handlers, before)


if __name__ == "__main__":
    unittest.main()
