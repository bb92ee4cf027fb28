"""Logger factory for the sstv_modulator package."""

from __future__ import annotations

import logging

ROOT_LOGGER_NAME = 'sstv_modulator'

# Library code never configures handlers; applications do.
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a logger, namespaced under the package root logger."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + '.'):
        name = f'{ROOT_LOGGER_NAME}.{name}'
    return logging.getLogger(name)
