from pathlib import Path

import structlog

from logrotate_sync.utils import logger as logger_module
from logrotate_sync.utils.logger import close_log_file, setup_logging


def test_log_file_opened_once(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "sync.log"

    setup_logging(log_file=str(log_file))
    first = logger_module._log_stream
    setup_logging(level="DEBUG", log_format="json", log_file=str(log_file))

    assert logger_module._log_stream is first
    structlog.get_logger().info("Run finished", host="web01")
    close_log_file()

    assert first.closed
    assert '"host": "web01"' in log_file.read_text()


def test_switching_to_stderr_closes_log_file(tmp_path: Path) -> None:
    setup_logging(log_file=str(tmp_path / "sync.log"))
    stream = logger_module._log_stream

    setup_logging()

    assert stream.closed
    assert logger_module._log_stream is None
