"""Logging for pipeline runs: readable console output plus JSON-lines files."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
RUN_LOG = "app.jsonl"
ERROR_LOG = "errors.jsonl"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; fields passed as ``extra={"props": {...}}`` are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        props = getattr(record, "props", None)
        if props:
            entry.update(props)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class RunContextAdapter(logging.LoggerAdapter):
    """Adds fixed context (e.g. the run id) to the props of every record."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra["props"] = {**self.extra, **extra.get("props", {})}
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(log_level: str = "INFO", log_dir: Union[str, Path] = "logs") -> Path:
    """
    Route all pipeline logging to the console and to JSON-lines files.

    ``app.jsonl`` receives every record at ``log_level`` or above and
    ``errors.jsonl`` only errors. Handlers from an earlier call are
    replaced, so calling this once per notebook session or run is enough.

    Args:
        log_level: Logging level name (DEBUG, INFO, ...)
        log_dir: Directory for the log files, created if missing

    Returns:
        The log directory
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(log_level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    run_file = logging.FileHandler(log_path / RUN_LOG)
    run_file.setLevel(log_level)
    run_file.setFormatter(JSONFormatter())

    error_file = logging.FileHandler(log_path / ERROR_LOG)
    error_file.setLevel(logging.ERROR)
    error_file.setFormatter(JSONFormatter())

    for handler in (console, run_file, error_file):
        root.addHandler(handler)

    logging.getLogger(__name__).info(f"Logging at {log_level} to {log_path}")
    return log_path


def configure_logging(config: Dict[str, Any]) -> Path:
    """``setup_logging`` driven by the ``logging`` section of a pipeline config."""
    section = config.get("logging", {})
    return setup_logging(section.get("level", "INFO"), section.get("directory", "logs"))


def get_logger(name: str, **context: Any) -> Union[logging.Logger, RunContextAdapter]:
    """Module logger, wrapped to carry ``context`` in every record when given."""
    logger = logging.getLogger(name)
    return RunContextAdapter(logger, context) if context else logger
