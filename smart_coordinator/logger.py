import logging
import json
import os
from logging.handlers import RotatingFileHandler


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_object = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
        }
        # If the message is a dictionary, merge it into the log object
        if isinstance(record.msg, dict):
            log_object.update(record.msg)
        else:
            log_object["message"] = record.getMessage()

        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_object, default=str)


def setup_logger(log_file: str = None, level: str = None):
    """
    Sets up a logger to output structured JSON logs to a rotating file.

    Calling it again with a different file or level (e.g. once the coordinator
    configuration is resolved) reconfigures the same logger in place.
    """
    log_file = log_file or os.getenv("LOG_FILE", "coordinator_history.log")
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logger = logging.getLogger("coordinator_logger")
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False  # Prevent logs from being duplicated by the root logger

    target = os.path.abspath(log_file)
    for existing in list(logger.handlers):
        if getattr(existing, "baseFilename", None) == target:
            return logger
        logger.removeHandler(existing)
        existing.close()

    # Use a rotating file handler to prevent the log file from growing indefinitely
    handler = RotatingFileHandler(log_file, maxBytes=10485760, backupCount=5, delay=True) # 10MB per file
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    return logger

# Initialize and export the logger
coordinator_logger = setup_logger()
