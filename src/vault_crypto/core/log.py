# SPDX-License-Identifier: MPL-2.0
"""Logging setup for vault-crypto entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; the CLI
(or the host application) decides where records go by calling
:func:`configure_logging`.
"""

import logging
import sys

ROOT_LOGGER = "vault_crypto"
HANDLER_NAME = "vault_crypto.stderr"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Calling it again replaces the handler installed by the previous call, so
    the handler always writes to the current ``sys.stderr``.

    Args:
        level: Logging level name
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())

    for existing in list(logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    return logger
