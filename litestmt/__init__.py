"""Prepared statements over SQLite's C API."""

from .native import (
    load_library, library_version, result_name,
    SQLITE_OK, SQLITE_ERROR, SQLITE_BUSY, SQLITE_LOCKED, SQLITE_CONSTRAINT,
    SQLITE_MISUSE, SQLITE_RANGE, SQLITE_ROW, SQLITE_DONE,
    SQLITE_INTEGER, SQLITE_FLOAT, SQLITE_TEXT, SQLITE_BLOB, SQLITE_NULL,
)
from .errors import (
    Error, Warning, InterfaceError, DatabaseError, InternalError, OperationalError,
    ProgrammingError, IntegrityError, DataError, NotSupportedError,
    PrepareError, BindError, StepError, ResetError, ResetPhase,
)
from .statement import PreparedStatement, CursorState, StepResult
from .connection import Connection, connect
from .log import init_logger, set_logger_verbose

__version__ = "0.1.0"

apilevel = "2.0"
threadsafety = 1  # Threads may share the module, but not connections
paramstyle = "qmark"


def __getattr__(name):
    # Resolved lazily so importing the package does not require the native library.
    if name == "sqlite_version":
        return library_version()
    if name == "sqlite_version_info":
        return tuple(int(part) for part in library_version().split("."))
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
