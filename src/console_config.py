"""
Console configuration loaded from config.ini.

Example config.ini:
    [Network]
    ApiBaseUrl = https://shop.example.com/api
    ApiToken =
    ConnectionTimeout = 10

    [Scanner]
    Sentinel = FRAGRANZA
    IdleTimeoutMs = 100
    MinLength = 3
    PipeDebounceMs = 150

    [Camera]
    DeviceId = 0
    FrameIntervalMs = 100
    Width = 640
    Height = 480

A missing file or key falls back to the defaults below. [Logging] is read
by logger.py directly.
"""

import configparser
from pathlib import Path
from typing import Optional

from logger import get_logger
from exceptions import ValidationError

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "http://localhost/api"
DEFAULT_SENTINEL = "FRAGRANZA"


class ConsoleConfig:
    """
    Typed view over config.ini.

    Attributes:
        api_base_url (str): Root URL of the order service (no trailing slash)
        api_token (str | None): Bearer token passed through to the service
        connection_timeout (float): HTTP timeout in seconds
        sentinel (str): First field of generated QR payloads
        idle_timeout (float): Hardware scanner inactivity window in seconds
        min_length (int): Buffer must be longer than this to count as a scan
        pipe_debounce_ms (int): Quiet period before a piped search text is parsed
        camera_device (int): OpenCV capture index
        frame_interval_ms (int): Camera decode loop period
        frame_width (int), frame_height (int): Requested capture size
    """

    def __init__(self, parser: Optional[configparser.ConfigParser] = None):
        parser = parser or configparser.ConfigParser()

        self.api_base_url = parser.get('Network', 'ApiBaseUrl', fallback=DEFAULT_API_BASE_URL).rstrip('/')
        self.api_token = parser.get('Network', 'ApiToken', fallback='').strip() or None
        self.connection_timeout = self._positive(parser, 'Network', 'ConnectionTimeout', 10.0, float)

        self.sentinel = parser.get('Scanner', 'Sentinel', fallback=DEFAULT_SENTINEL).strip()
        if not self.sentinel or '|' in self.sentinel:
            raise ValidationError("[Scanner] Sentinel must be non-empty and must not contain '|'")
        self.idle_timeout = self._positive(parser, 'Scanner', 'IdleTimeoutMs', 100, int) / 1000.0
        self.min_length = self._positive(parser, 'Scanner', 'MinLength', 3, int)
        self.pipe_debounce_ms = self._positive(parser, 'Scanner', 'PipeDebounceMs', 150, int)

        self.camera_device = self._positive(parser, 'Camera', 'DeviceId', 0, int, allow_zero=True)
        self.frame_interval_ms = self._positive(parser, 'Camera', 'FrameIntervalMs', 100, int)
        self.frame_width = self._positive(parser, 'Camera', 'Width', 640, int)
        self.frame_height = self._positive(parser, 'Camera', 'Height', 480, int)

    @staticmethod
    def _positive(parser, section: str, key: str, default, cast, allow_zero: bool = False):
        raw = parser.get(section, key, fallback=None)
        if raw is None or raw.strip() == '':
            return cast(default)
        try:
            value = cast(raw)
        except ValueError:
            raise ValidationError(f"[{section}] {key} must be a number, got {raw!r}")
        if value < 0 or (value == 0 and not allow_zero):
            raise ValidationError(f"[{section}] {key} must be {'non-negative' if allow_zero else 'positive'}, got {raw!r}")
        return value

    @classmethod
    def load(cls, config_path: str = "config.ini") -> "ConsoleConfig":
        """
        Load configuration from a config.ini file.

        Args:
            config_path: Path to the ini file

        Returns:
            ConsoleConfig with file values over defaults

        Raises:
            ValidationError: If a value is malformed
        """
        parser = configparser.ConfigParser()

        if not Path(config_path).exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
        else:
            try:
                parser.read(config_path, encoding='utf-8')
                logger.info(f"Configuration loaded from {config_path}")
            except configparser.Error as e:
                raise ValidationError(f"Cannot parse {config_path}: {e}")

        return cls(parser)
