"""Console diagnostics for the ``litestmt`` logger namespace.

The library itself only creates loggers; applications call
:func:`init_logger` once at startup to see the output.
"""

import logging
import os
import sys

LOGGER_NAME = "litestmt"

_handler = None


def init_logger(stream=None):
    """Attach a message-only console handler to the ``litestmt`` logger.

    Calling it again is a no-op. ``LITESTMT_VERBOSE=1`` turns on debug traces.
    """
    global _handler
    root = logging.getLogger(LOGGER_NAME)
    if _handler is None:
        _handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(_handler)
        root.setLevel(logging.INFO)

    verbose = os.environ.get("LITESTMT_VERBOSE", "").strip().lower()
    if verbose in {"1", "true", "yes", "on"}:
        set_logger_verbose()
    return root


def set_logger_verbose():
    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG)


def shutdown_logger():
    global _handler
    if _handler is None:
        return
    root = logging.getLogger(LOGGER_NAME)
    root.removeHandler(_handler)
    _handler.close()
    _handler = None
    root.setLevel(logging.NOTSET)
