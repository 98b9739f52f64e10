"""Structured logging for verdeployed.

Event-style messages with keyword fields: JSON lines when stderr is not a
terminal, coloured text when it is.
Everything goes to stderr because stdout carries the deployment report.
"""
import os
import sys
import json
from datetime import datetime, timezone
from typing import Any, Optional, TextIO


LEVELS = {'DEBUG': 0, 'INFO': 1, 'WARN': 2, 'ERROR': 3}

_COLORS = {
    'DEBUG': '\033[36m',  # Cyan
    'INFO': '\033[32m',   # Green
    'WARN': '\033[33m',   # Yellow
    'ERROR': '\033[31m',  # Red
}
_RESET = '\033[0m'


class StructuredLogger:
    """Structured logger that outputs JSON in pipelines, readable text in a terminal."""

    def __init__(self, level: str = 'INFO', stream: Optional[TextIO] = None):
        """Initialize logger.

        Args:
            level: Minimum log level (DEBUG, INFO, WARN, ERROR)
            stream: Output stream; defaults to the current sys.stderr at write time
        """
        self.level = 'INFO'
        self.set_level(level)
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def set_level(self, level: str) -> None:
        """Change the minimum level; unknown names fall back to INFO."""
        level = (level or 'INFO').strip().upper()
        if level == 'WARNING':
            level = 'WARN'
        self.level = level if level in LEVELS else 'INFO'

    def _should_log(self, level: str) -> bool:
        return LEVELS.get(level.upper(), 1) >= LEVELS.get(self.level, 1)

    def _is_tty(self) -> bool:
        isatty = getattr(self.stream, 'isatty', None)
        return bool(isatty and isatty())

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        if not self._should_log(level):
            return

        level = level.upper()
        out = self.stream

        if self._is_tty():
            parts = [f"{_COLORS.get(level, '')}[{level}]{_RESET} {message}"]
            if kwargs:
                kv_parts = []
                for k, v in kwargs.items():
                    if isinstance(v, (dict, list)):
                        v = json.dumps(v)[:100]  # Truncate long values
                    kv_parts.append(f"{k}={v}")
                parts.append("| " + " ".join(kv_parts))
            print(" ".join(parts), file=out)
        else:
            entry = {
                'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                'level': level,
                'msg': message,
                **kwargs,
            }
            print(json.dumps(entry, default=str), file=out)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log('INFO', message, **kwargs)

    def warn(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log('WARN', message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log('ERROR', message, **kwargs)


def env_log_level() -> str:
    """Level from VERDEPLOYED_LOG_LEVEL, then LOG_LEVEL, else INFO."""
    return os.getenv('VERDEPLOYED_LOG_LEVEL') or os.getenv('LOG_LEVEL') or 'INFO'


# Global logger instance; cli.main re-applies the level once .env is loaded
logger = StructuredLogger(level=env_log_level())
