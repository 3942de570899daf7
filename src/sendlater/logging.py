"""Centralized logging configuration for sendlater.

All entry points should call configure_logging() early.

Logging Levels:
- DEBUG: Poll ticks, option parsing, Telegram API details
- INFO: Scheduled and delivered messages, startup/shutdown steps
- WARNING: Ignored users, deliveries dropped at shutdown
- ERROR: Failed deliveries and startup failures

Events are logged as snake_case messages with dotted ``extra`` keys
(``schedule.delivery_id``, ``messaging.chat_id``, ``error.message``) so the
JSONL file stays greppable.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TextIO

DEFAULT_LOG_RETENTION_DAYS = 7

DEFAULT_REDACT_PATTERNS: list[str] = [
    # Telegram bot tokens (numeric_id:alphanumeric_token)
    r"\b(\d{8,}:[A-Za-z0-9_-]{30,})\b",
    # ENV-style assignments: BOT_TOKEN=secret or API_KEY: secret
    r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET|PASSWORD|PASSWD)\s*[=:]\s*([^\s\"']{8,})",
    # Bearer tokens in headers
    r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
]

# Attributes every LogRecord carries; anything else came from ``extra=``
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "component"}


@dataclass
class SecretRedactor:
    """Redacts sensitive information from log messages.

    Matches are replaced with partially masked versions for debuggability.
    """

    patterns: list[re.Pattern[str]] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.patterns:
            self.patterns = [
                re.compile(p, re.IGNORECASE) for p in DEFAULT_REDACT_PATTERNS
            ]

    def redact(self, text: str) -> str:
        """Redact secrets from text, preserving partial info for debugging."""
        if not self.enabled or not text:
            return text
        result = text
        for pattern in self.patterns:
            result = pattern.sub(self._mask_match, result)
        return result

    def _mask_match(self, match: re.Match[str]) -> str:
        full = match.group(0)
        token = match.group(1) if match.lastindex else full

        if "..." in token:
            return full

        if len(token) < 12:
            return full.replace(token, "***") if token != full else "***"

        masked = f"{token[:4]}...{token[-4:]}"
        return full.replace(token, masked) if token != full else masked


_redactor = SecretRedactor()


def prune_old_logs(
    logs_dir: Path,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    suffix: str = ".jsonl",
) -> int:
    """Delete log files older than retention period.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.exists():
        return 0

    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    deleted = 0

    for entry in logs_dir.iterdir():
        if not entry.is_file() or not entry.name.endswith(suffix):
            continue
        try:
            mtime = datetime.fromtimestamp(entry.stat().st_mtime, UTC)
            if mtime < cutoff:
                entry.unlink()
                deleted += 1
        except OSError:
            pass  # Ignore errors on individual files

    return deleted


def _component(logger_name: str) -> str:
    parts = logger_name.split(".")
    if len(parts) >= 2 and parts[0] == "sendlater":
        return parts[1]
    return parts[0]


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Return the fields passed to a log call via ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


class JSONLHandler(logging.Handler):
    """Handler that writes structured log entries to a JSONL file.

    Logs are written to ~/.sendlater/logs/YYYY-MM-DD.jsonl with one JSON
    object per line, rotated daily and pruned after the retention period.
    """

    def __init__(
        self,
        logs_dir: Path,
        retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    ):
        super().__init__()
        self._logs_dir = logs_dir
        self._logs_dir.mkdir(parents=True, exist_ok=True)
        self._retention_days = retention_days
        self._current_date: str | None = None
        self._file: TextIO | None = None

    def _get_log_file(self) -> TextIO:
        """Get the current log file, rotating daily."""
        today = datetime.now(UTC).strftime("%Y-%m-%d")
        if self._current_date != today or self._file is None:
            if self._file:
                self._file.close()
            self._current_date = today
            log_path = self._logs_dir / f"{today}.jsonl"
            self._file = log_path.open("a", encoding="utf-8")

            prune_old_logs(self._logs_dir, self._retention_days)

        return self._file

    def emit(self, record: logging.LogRecord) -> None:
        """Write a log record as JSON with secret redaction."""
        try:
            entry: dict[str, Any] = {
                "ts": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "component": _component(record.name),
                "logger": record.name,
                "message": _redactor.redact(record.getMessage()),
            }

            if record.exc_info:
                formatter = self.formatter or logging.Formatter()
                exception_text = formatter.formatException(record.exc_info)
                entry["exception"] = _redactor.redact(exception_text)

            if extras := record_extras(record):
                extra_str = json.dumps(extras, default=str)
                redacted_str = _redactor.redact(extra_str)
                try:
                    entry["extra"] = json.loads(redacted_str)
                except json.JSONDecodeError:
                    # Redaction broke JSON structure - use raw redacted string
                    entry["extra"] = {"_redacted_raw": redacted_str}

            log_file = self._get_log_file()
            log_file.write(json.dumps(entry) + "\n")
            log_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None
        super().close()


class ComponentFormatter(logging.Formatter):
    """Formatter that shortens logger paths and appends extras.

    - sendlater.scheduling.scheduler -> scheduling
    - sendlater.providers.telegram.provider -> providers
    """

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record.name)
        text = super().format(record)
        if extras := record_extras(record):
            pairs = " ".join(f"{k}={v}" for k, v in extras.items())
            text = f"{text} {_redactor.redact(pairs)}"
        return text


# Third-party loggers that are too noisy at INFO level
NOISY_LOGGERS = [
    "aiogram",
    "aiogram.event",
    "aiogram.dispatcher",
    "aiohttp.access",
]


def configure_logging(
    level: str = "INFO",
    use_rich: bool = False,
    log_to_file: bool = False,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
) -> None:
    """Configure logging for sendlater.

    Call this once at application startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        use_rich: Use Rich handler for colorful output (server mode).
        log_to_file: Also write logs to JSONL files in ~/.sendlater/logs/.
        retention_days: Days of JSONL logs to keep.
    """
    from sendlater.config.paths import get_logs_path

    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []

    if use_rich:
        from rich.logging import RichHandler

        console_handler: logging.Handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
            markup=False,
        )
        console_handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    handlers.append(console_handler)

    if log_to_file:
        file_handler = JSONLHandler(get_logs_path(), retention_days=retention_days)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
