import atexit
import json
import logging
import os
import queue
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict

_listeners: Dict[str, QueueListener] = {}


class JsonFormatter(logging.Formatter):
    """Logging formatter that outputs JSON-formatted records.

    The formatter serializes level, message, logger name and a timestamp.
    A mapping passed as `extra={"context": {...}}` is merged under the
    `context` key, e.g. the location id or coordinates a request resolved.
    If exception information is present it is included under the
    `exception` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_record["context"] = context
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False, default=str)


def get_logger(name: str = "weather_engine") -> logging.Logger:
    """Return a logger which serializes records to JSON through a queue.

    The first call for a given name attaches a QueueHandler and starts a
    QueueListener, so log emission is non-blocking and serialization happens
    in a single consumer thread. Later calls return the same logger without
    adding handlers again. Listeners are stopped at interpreter exit so
    queued records are flushed.

    Args:
        name (str): Logger name (defaults to "weather_engine").

    Returns:
        logging.Logger: Configured logger instance with JSON formatting.
    """
    logger = logging.getLogger(name)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    if name in _listeners:
        return logger

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter())

    listener = QueueListener(log_queue, stream_handler)
    listener.start()
    atexit.register(listener.stop)
    _listeners[name] = listener

    logger.addHandler(QueueHandler(log_queue))
    logger.propagate = False

    return logger
