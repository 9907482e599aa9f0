import logging
import sys
from datetime import datetime, timezone

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "trait-profile-engine"

# Present on every record (null when unset) so log queries can filter by them.
CONTEXT_FIELDS = ("session_id", "user_id", "cusp_id")

# Request-level chatter from the text-generation client.
QUIET_LOGGERS = ("httpx", "httpcore")

LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['service'] = SERVICE_NAME
        for field in CONTEXT_FIELDS:
            log_record[field] = getattr(record, field, None)
        if record.levelno >= logging.WARNING:
            log_record['location'] = f"{record.module}:{record.lineno}"


def _json_handler(root_logger: logging.Logger):
    for handler in root_logger.handlers:
        if isinstance(handler.formatter, CustomJsonFormatter):
            return handler
    return None


def setup_logging(log_level_str: str = "INFO") -> logging.Handler:
    """
    Installs the JSON handler on the root logger, once, and applies the level.
    The text-generation client's HTTP loggers stay at WARNING unless DEBUG is
    asked for.
    """
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    quiet_level = log_level if log_level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    handler = _json_handler(root_logger)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(CustomJsonFormatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.info(f"Structured JSON logging configured with level: {logging.getLevelName(log_level)}")
    return handler
