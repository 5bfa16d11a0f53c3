"""
Logging setup: console plus rotating log files, optionally as JSON lines.
"""
import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict

from whatsapp_google_uploader.config import LoggingConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_obj, ensure_ascii=False)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_file: str = "uploader.log",
    level: str = "INFO",
    enable_json: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    separate_error_log: bool = True
) -> None:
    """
    Configure the root logger.

    Args:
        log_file: Path to the main log file
        level: Logging level name
        enable_json: Write JSON lines instead of plain text
        max_bytes: Size at which log files rotate
        backup_count: Rotated files to keep
        separate_error_log: Also write ERROR and above to ``<name>_error<ext>``
    """
    root_logger = logging.getLogger()
    root_logger.handlers = []

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if enable_json:
        formatter = JsonFormatter(datefmt=DATE_FORMAT)
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    root_logger.addHandler(
        _rotating_handler(log_path, log_level, formatter, max_bytes, backup_count)
    )

    if separate_error_log:
        error_log = log_path.parent / f"{log_path.stem}_error{log_path.suffix}"
        root_logger.addHandler(
            _rotating_handler(error_log, logging.ERROR, formatter, max_bytes, backup_count)
        )

    # googleapiclient logs every discovery document fetch at INFO
    logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)


def configure_logging(config: LoggingConfig) -> None:
    """Apply the ``logging`` section of the configuration."""
    try:
        setup_logging(
            log_file=config.file,
            level=config.level,
            enable_json=config.json_format,
        )
    except (OSError, IOError) as e:
        # Unwritable log location: fall back to console only
        print(f"Warning: Could not set up log file '{config.file}': {e}", file=sys.stderr)
        logging.basicConfig(
            level=getattr(logging, config.level.upper(), logging.INFO),
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)]
        )
