"""Logging utilities for sitepipe commands."""

import logging

_LOGGER_NAME = "sitepipe"


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Send sitepipe records to the console; ``verbose`` enables DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("%(levelname)-7s -  %(message)s"))
    logger.addHandler(stream_handler)
    return logger
