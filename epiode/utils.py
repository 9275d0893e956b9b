import logging
import logging.config
import os
import socket
from typing import Optional


def set_logging_config(verbose: bool, log_file: Optional[str] = None):
    """
    Configure the root logger to write to the terminal, and optionally to a log file.
    Each record is tagged with the name of the host it was produced on.
    """
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.host = socket.gethostname()
        return record

    logging.setLogRecordFactory(record_factory)

    log_format = "%(asctime)s %(host)s %(levelname)s %(message)s"
    level = "INFO" if verbose else "WARNING"
    root_logger = {"level": level, "handlers": ["stream"]}
    handlers = {
        "stream": {
            "level": level,
            "class": "logging.StreamHandler",
            "formatter": "app",
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        root_logger["handlers"].append("file")
        handlers["file"] = {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "app",
            "encoding": "utf-8",
        }
        # The file always records INFO, even when the terminal is quiet.
        root_logger["level"] = "INFO"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": root_logger,
            "handlers": handlers,
            "formatters": {
                "app": {"format": log_format},
            },
        }
    )
