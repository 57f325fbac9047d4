"""structlog setup for the auth CLI and anything else that embeds it.

LOG_FORMAT selects the renderer ("json", or "console"/unset for colored text)
and LOG_LEVEL the threshold (INFO by default). Events always go to stderr so a
command's stdout stays parseable; a log directory adds a per-run file.

Credential-bearing fields (passwords, session tickets, provider tokens and
remember-me ids) are masked before any renderer sees them.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

REDACTED = "***"
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "session_ticket",
        "auth_ticket",
        "custom_id",
        "remember_me_id",
        "token",
    },
)

_LOG_FORMATS = ("json", "console", "")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_QUIET_LOGGERS = ("httpx", "httpcore")


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Render AuthType, Platform and friends as their string values."""
    for key, value in event_dict.items():
        if isinstance(value, dict):
            event_dict[key] = {k: _plain(v) for k, v in value.items()}
        else:
            event_dict[key] = _plain(value)
    return event_dict


def _redact_secrets(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask credential values, including one level of nested dicts."""
    for key, value in event_dict.items():
        if key in SENSITIVE_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {k: REDACTED if k in SENSITIVE_KEYS and v else v for k, v in value.items()}
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, default: str, allowed: tuple[str, ...]) -> str:
    value = os.environ.get(name, default)
    value = value.upper() if default.isupper() else value.lower()
    if value not in allowed:
        shown = ", ".join(repr(a) for a in allowed if a)
        msg = f"Invalid {name}={value!r}. Must be one of {shown}."
        raise ValueError(msg)
    return value


def _formatter(*, json_mode: bool, colors: bool) -> logging.Formatter:
    if json_mode:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            _redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _open_log_file(log_dir: Path | str, *, json_mode: bool) -> tuple[Path, logging.Handler]:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{datetime.now(tz=UTC).strftime('%Y-%m-%d_%H-%M-%S')}.log"
    handler = logging.FileHandler(path)
    handler.setFormatter(_formatter(json_mode=json_mode, colors=False))
    return path, handler


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Route structlog through the root logger and return the log file path, if any.

    Previous root handlers are replaced, so repeated calls are safe. No file
    is opened under pytest.
    """
    json_mode = _env_choice("LOG_FORMAT", "", _LOG_FORMATS) == "json"
    if level is None:
        level = getattr(logging, _env_choice("LOG_LEVEL", "INFO", _LOG_LEVELS))

    _configure_structlog()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(json_mode=json_mode, colors=sys.stderr.isatty()))
    root.addHandler(console)

    if log_dir is None or _is_test():
        return None
    path, file_handler = _open_log_file(log_dir, json_mode=json_mode)
    root.addHandler(file_handler)
    return path
