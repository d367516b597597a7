"""
Utility functions for Gold Digger.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from .config import config_to_dict
from .exit_codes import iter_error_chain
from .models import Config
from .redaction import redact

DEFAULT_LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class RedactingFormatter(logging.Formatter):
    """Formatter that masks credentials in the final rendered record."""

    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration. Diagnostics go to stderr."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')
    formatter = RedactingFormatter(log_settings.get('format', DEFAULT_LOG_FORMAT))

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )


def format_config_dump(config: Config) -> str:
    """Render the resolved configuration as YAML with secrets redacted."""
    dumped = yaml.safe_dump(
        {'gold_digger': config_to_dict(config)},
        sort_keys=False,
        default_flow_style=False,
    )
    return redact(dumped)


def describe_error_chain(error: BaseException) -> list[str]:
    """One line per exception in the cause chain, outermost first."""
    return [
        f"{type(err).__name__}: {redact(str(err))}"
        for err in iter_error_chain(error)
    ]
