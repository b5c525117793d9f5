import ctypes
import logging
import os
import weakref

from . import native
from .errors import OperationalError, ProgrammingError, engine_message
from .native import (
    SQLITE_OK,
    SQLITE_OPEN_CREATE,
    SQLITE_OPEN_READONLY,
    SQLITE_OPEN_READWRITE,
    SQLITE_OPEN_URI,
    load_library,
)
from .statement import PreparedStatement

logger = logging.getLogger(__name__)


def _close_database(lib, db, log):
    log.debug("Closing database: 0x%x", db)
    # close_v2 defers the close if statements are somehow still alive
    lib.sqlite3_close_v2(db)


class Connection:
    """An open SQLite database.

    Statements prepared from a connection keep it alive; closing it releases
    any statement that is still alive first. Not safe for use from more than
    one thread at a time.
    """

    def __init__(self, path, *, readonly=False, uri=False, lib=None, logger=None):
        self._db = None
        self._finalizer = None
        self._statements = weakref.WeakSet()
        self._lib = lib if lib is not None else load_library()
        self._logger = logger
        self._log = logger if logger is not None else logging.getLogger(__name__)
        self.path = os.fspath(path)

        flags = SQLITE_OPEN_READONLY if readonly else SQLITE_OPEN_READWRITE | SQLITE_OPEN_CREATE
        if uri:
            flags |= SQLITE_OPEN_URI

        db = ctypes.c_void_p()
        code = self._lib.sqlite3_open_v2(self.path.encode("utf-8"), ctypes.byref(db), flags, None)
        if code != SQLITE_OK:
            # The engine hands back a handle even on most failures; it still has to be closed.
            msg = engine_message(self._lib, db.value, code)
            if db.value:
                self._lib.sqlite3_close_v2(db.value)
            raise OperationalError(f"Failed to open database {self.path!r}: {msg} ({native.result_name(code)})")

        self._db = db.value
        self._finalizer = weakref.finalize(self, _close_database, self._lib, self._db, self._log)
        self._log.debug("Opened database %s: 0x%x", self.path, self._db)

    def __repr__(self):
        state = "closed" if self.closed else f"0x{self._db:x}"
        return f"<Connection {self.path!r} {state}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def lib(self):
        return self._lib

    @property
    def handle(self):
        """Native database handle address, or None once closed."""
        return self._db

    @property
    def closed(self):
        return self._db is None

    def _require_open(self):
        if self._db is None:
            raise ProgrammingError("Connection closed")
        return self._db

    def _track_statement(self, stmt):
        self._statements.add(stmt)

    def _untrack_statement(self, stmt):
        self._statements.discard(stmt)

    def prepare(self, query):
        return PreparedStatement(self, query, logger=self._logger)

    def execute(self, query, parameters=()):
        """Run a statement to completion and return the number of changed rows."""
        with self.prepare(query) as stmt:
            stmt.bind_all(parameters)
            while stmt.fetch():
                pass
        return self.changes

    def query(self, query, parameters=()):
        with self.prepare(query) as stmt:
            stmt.bind_all(parameters)
            return list(stmt)

    @property
    def changes(self):
        return self._lib.sqlite3_changes(self._require_open())

    @property
    def total_changes(self):
        return self._lib.sqlite3_total_changes(self._require_open())

    @property
    def last_insert_rowid(self):
        return self._lib.sqlite3_last_insert_rowid(self._require_open())

    @property
    def in_transaction(self):
        return self._lib.sqlite3_get_autocommit(self._require_open()) == 0

    def close(self):
        if self._db is None:
            return
        for stmt in list(self._statements):
            stmt.release()
        self._finalizer()
        self._db = None


def connect(path, **kwargs):
    return Connection(path, **kwargs)
