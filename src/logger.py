"""
Centralized logging configuration for the Sales Console.

Every module logs through ``get_logger(__name__)``. The first call sets up:
- Structured JSON lines in a daily log file (easy to grep for one order)
- Size-based rotation of that file
- A human-readable console handler
- Cleanup of log files older than the retention period
- Context fields (operator_id, station_id, scan_source) on every record

Settings come from the [Logging] section of config.ini:
    LogLevel = INFO
    LogDir = C:\\SalesConsole\\logs
    MaxLogSizeMB = 10
    LogRetentionDays = 30

Example log entry (JSON format):
    {"timestamp": "2025-11-05T14:30:45.123", "level": "INFO", "tool": "sales_console",
     "operator_id": "sales-07", "station_id": "FRONT-DESK", "scan_source": "camera",
     "module": "order_resolver", "function": "resolve", "line": 88,
     "message": "Order ORD-2025-042 auto-completed"}
"""

import logging
import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any
import configparser
from contextvars import ContextVar


_operator_id: ContextVar[Optional[str]] = ContextVar('operator_id', default=None)
_station_id: ContextVar[Optional[str]] = ContextVar('station_id', default=None)
_scan_source: ContextVar[Optional[str]] = ContextVar('scan_source', default=None)

DEFAULT_LOG_DIR = Path(os.path.expanduser("~")) / ".sales_console" / "logs"


class StructuredJSONFormatter(logging.Formatter):
    """
    JSON formatter for the file handler.

    Each record becomes one JSON object with the timestamp, level, the
    current operator/station/scan-source context, the emitting module,
    function and line, the message, and exception text when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'tool': 'sales_console',
            'operator_id': _operator_id.get(),
            'station_id': _station_id.get(),
            'scan_source': _scan_source.get(),
            'module': record.name,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exc_info'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data['extra'] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False)


class AppLogger:
    """
    Application-wide logging setup, performed once on first use.

    Attributes:
        _initialized: Whether handlers have been attached to the root logger
        config_path: config.ini consulted during setup
    """

    _initialized: bool = False
    config_path: str = 'config.ini'

    @classmethod
    def get_logger(cls, name: str = 'SalesConsole') -> logging.Logger:
        """
        Return a named logger, configuring logging on the first call.

        Args:
            name: Logger name, normally the calling module's ``__name__``

        Returns:
            Logger sharing the application's handlers
        """
        if not cls._initialized:
            cls._setup_logging()
            cls._initialized = True

        return logging.getLogger(name)

    @classmethod
    def _setup_logging(cls):
        """
        Attach the JSON file handler and the console handler to the root logger.

        The log directory falls back to ~/.sales_console/logs when the
        configured one cannot be created (e.g. a disconnected network share).
        """
        config = cls._load_config()

        log_dir = Path(config.get('Logging', 'LogDir', fallback='').strip() or DEFAULT_LOG_DIR)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log_dir = DEFAULT_LOG_DIR
            log_dir.mkdir(parents=True, exist_ok=True)
            print(f"Warning: Could not create log directory. Using local: {log_dir}. Error: {e}")

        log_file = log_dir / f"{datetime.now():%Y-%m-%d}.log"

        log_level_str = config.get('Logging', 'LogLevel', fallback='INFO')
        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        max_log_size = config.getint('Logging', 'MaxLogSizeMB', fallback=10) * 1024 * 1024

        console_formatter = logging.Formatter(
            fmt='%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_log_size,
            backupCount=30,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredJSONFormatter())

        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(console_formatter)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        retention_days = config.getint('Logging', 'LogRetentionDays', fallback=30)
        cls._cleanup_old_logs(log_dir, retention_days)

        logger = logging.getLogger('SalesConsole')
        logger.info("=" * 80)
        logger.info("Sales Console Started")
        logger.info(f"Log Level: {log_level_str}")
        logger.info(f"Log File: {log_file}")
        logger.info("=" * 80)

    @classmethod
    def _load_config(cls) -> configparser.ConfigParser:
        """Read config.ini if it exists; an empty parser means all fallbacks apply."""
        config = configparser.ConfigParser()
        config_path = Path(cls.config_path)

        if config_path.exists():
            config.read(config_path, encoding='utf-8')

        return config

    @staticmethod
    def _cleanup_old_logs(log_dir: Path, retention_days: int):
        """
        Delete log files whose modification time is older than the retention period.

        Args:
            log_dir: Directory holding the daily log files
            retention_days: Days to keep; 0 or negative keeps everything
        """
        if retention_days <= 0:
            return

        cutoff_date = datetime.now() - timedelta(days=retention_days)

        try:
            for log_file in log_dir.glob("*.log*"):
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    logging.getLogger('SalesConsole').debug(f"Deleted old log: {log_file.name}")
        except OSError as e:
            # File in use or share gone; retry on next start
            logging.getLogger('SalesConsole').warning(f"Failed to cleanup old logs: {e}")


def get_logger(name: str = 'SalesConsole') -> logging.Logger:
    """
    Get application logger.

    Example:
        >>> from logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Scanner view opened")
    """
    return AppLogger.get_logger(name)


def set_operator_context(operator_id: Optional[str]) -> None:
    """Set the signed-in sales operator for subsequent log records (None clears it)."""
    _operator_id.set(operator_id)


def set_station_context(station_id: Optional[str]) -> None:
    """Set the console/station name for subsequent log records (None clears it)."""
    _station_id.set(station_id)


def set_scan_context(scan_source: Optional[str]) -> None:
    """
    Set the channel of the scan currently being processed.

    The dispatcher sets this to "hardware_scanner", "camera" or "manual"
    while it handles an event, so resolver and executor records can be
    traced back to the input that caused them.
    """
    _scan_source.set(scan_source)


def clear_logging_context() -> None:
    """Clear operator_id, station_id and scan_source."""
    _operator_id.set(None)
    _station_id.set(None)
    _scan_source.set(None)
