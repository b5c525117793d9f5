"""Prepared statements: compile once, bind, step, read columns, reset, release.

A :class:`PreparedStatement` exclusively owns one native compiled-query
handle. The handle is finalized exactly once, either by :meth:`release`
(directly or through ``with``) or by the garbage collector.
"""

import collections.abc
import ctypes
import enum
import logging
import weakref

from . import native
from .errors import (
    BindError,
    DataError,
    PrepareError,
    ProgrammingError,
    ResetError,
    ResetPhase,
    StepError,
    engine_message,
)
from .native import SQLITE_OK, SQLITE_MISUSE, SQLITE_RANGE, SQLITE_TRANSIENT

INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1


class CursorState(enum.Enum):
    READY = "ready"
    HAS_ROW = "has_row"
    DONE = "done"


class StepResult(enum.Enum):
    """Outcome of one ``sqlite3_step`` call."""

    ROW = "row"
    DONE = "done"
    ERROR = "error"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_code(cls, code):
        if code == native.SQLITE_ROW:
            return cls.ROW
        if code == native.SQLITE_DONE:
            return cls.DONE
        if native.SQLITE_ERROR <= (code & 0xFF) <= native.SQLITE_NOTADB:
            return cls.ERROR
        return cls.UNRECOGNIZED


def _finalize_statement(lib, handle, query, logger):
    logger.debug("Destroying statement: 0x%x %s", handle, query)
    lib.sqlite3_finalize(handle)


class PreparedStatement:
    def __init__(self, connection, query, *, logger=None):
        self._handle = None
        self._finalizer = None
        self._connection = connection
        self._query = query
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._state = CursorState.READY
        self._last_result = None
        self._failed_step_code = None

        if not isinstance(query, str):
            raise TypeError(f"query must be str, not {type(query).__name__}")
        if not query:
            raise PrepareError("Cannot prepare an empty SQL statement", query=query, native_code=SQLITE_MISUSE)

        db = connection.handle
        if not db:
            raise PrepareError("Cannot prepare SQL statement: connection is closed",
                               query=query, native_code=SQLITE_MISUSE)

        lib = connection.lib
        encoded = query.encode("utf-8")
        stmt_ptr = ctypes.c_void_p()
        code = lib.sqlite3_prepare_v2(db, encoded, len(encoded), ctypes.byref(stmt_ptr), None)
        if code != SQLITE_OK:
            if stmt_ptr.value:
                lib.sqlite3_finalize(stmt_ptr.value)
            raise PrepareError(f"Cannot prepare SQL statement: {engine_message(lib, db, code)}",
                               query=query, native_code=code)
        if not stmt_ptr.value:
            # Whitespace or comments only
            raise PrepareError("SQL text contains no statement", query=query, native_code=SQLITE_MISUSE)

        self._lib = lib
        self._handle = stmt_ptr.value
        self._finalizer = weakref.finalize(self, _finalize_statement, lib, self._handle, query, self._logger)
        connection._track_statement(self)

        self._logger.debug("Statement: %s (0x%x)", query, self._handle)

    # Not copyable: two wrappers over one handle would finalize it twice.
    def __copy__(self):
        raise TypeError("PreparedStatement objects cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("PreparedStatement objects cannot be copied")

    def __reduce__(self):
        raise TypeError("PreparedStatement objects cannot be pickled")

    def __repr__(self):
        if self._handle is None:
            return f"<PreparedStatement {self._query!r} released>"
        return f"<PreparedStatement {self._query!r} state={self._state.value} handle=0x{self._handle:x}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __iter__(self):
        while self.fetch():
            yield self.row()

    @property
    def query(self):
        return self._query

    @property
    def connection(self):
        return self._connection

    @property
    def handle(self):
        """Native handle address, or None once released."""
        return self._handle

    @property
    def released(self):
        return self._handle is None

    @property
    def state(self):
        return self._state

    @property
    def has_row(self):
        return self._state is CursorState.HAS_ROW

    @property
    def done(self):
        return self._state is CursorState.DONE

    @property
    def last_result(self):
        return self._last_result

    def _require_handle(self):
        if self._handle is None:
            raise ProgrammingError(f"Statement has been released: {self._query}")
        return self._handle

    # Binding

    def _check_bind(self, index, code):
        if code != SQLITE_OK:
            msg = engine_message(self._lib, self._connection.handle, code)
            raise BindError(f"Failed binding parameter {index}: {msg}",
                            query=self._query, param_index=index, native_code=code)
        return self

    @property
    def parameter_count(self):
        return self._lib.sqlite3_bind_parameter_count(self._require_handle())

    def parameter_index(self, name):
        """1-based index of a named placeholder, or 0 if the query has none by that name.

        Bare names are looked up with each of the ``:``, ``@`` and ``$`` prefixes.
        """
        handle = self._require_handle()
        keys = [name] if name[:1] in (":", "@", "$", "?") else [":" + name, "@" + name, "$" + name]
        for key in keys:
            index = self._lib.sqlite3_bind_parameter_index(handle, key.encode("utf-8"))
            if index:
                return index
        return 0

    def bind_null(self, index):
        handle = self._require_handle()
        return self._check_bind(index, self._lib.sqlite3_bind_null(handle, index))

    def bind_int(self, index, value):
        handle = self._require_handle()
        value = int(value)
        if not INT32_MIN <= value <= INT32_MAX:
            raise DataError(f"Value {value} out of range for a 32-bit integer parameter")
        return self._check_bind(index, self._lib.sqlite3_bind_int(handle, index, value))

    def bind_int64(self, index, value):
        handle = self._require_handle()
        value = int(value)
        if not INT64_MIN <= value <= INT64_MAX:
            raise DataError(f"Value {value} out of range for a 64-bit integer parameter")
        return self._check_bind(index, self._lib.sqlite3_bind_int64(handle, index, value))

    def bind_double(self, index, value):
        handle = self._require_handle()
        return self._check_bind(index, self._lib.sqlite3_bind_double(handle, index, float(value)))

    def bind_text(self, index, value):
        handle = self._require_handle()
        data = value.encode("utf-8")
        code = self._lib.sqlite3_bind_text(handle, index, data, len(data), SQLITE_TRANSIENT)
        return self._check_bind(index, code)

    def bind_blob(self, index, value):
        handle = self._require_handle()
        data = bytes(value)
        code = self._lib.sqlite3_bind_blob(handle, index, data, len(data), SQLITE_TRANSIENT)
        return self._check_bind(index, code)

    def bind(self, index, value):
        if value is None:
            return self.bind_null(index)
        if isinstance(value, bool):
            return self.bind_int64(index, 1 if value else 0)
        if isinstance(value, int):
            return self.bind_int64(index, value)
        if isinstance(value, float):
            return self.bind_double(index, value)
        if isinstance(value, str):
            return self.bind_text(index, value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.bind_blob(index, value)
        # Unknown types (dates, decimals, ...) go in as their text form
        return self.bind_text(index, str(value))

    def bind_all(self, params):
        """Bind a sequence to 1..n, or a mapping by placeholder name."""
        if isinstance(params, collections.abc.Mapping):
            for name, value in params.items():
                index = self.parameter_index(name)
                if not index:
                    raise BindError(f"No parameter named {name!r}",
                                    query=self._query, param_index=name, native_code=SQLITE_RANGE)
                self.bind(index, value)
        else:
            for index, value in enumerate(params, start=1):
                self.bind(index, value)
        return self

    # Execution

    def step(self):
        handle = self._require_handle()
        code = self._lib.sqlite3_step(handle)
        result = StepResult.from_code(code)
        self._last_result = result

        if result is StepResult.ROW:
            self._state = CursorState.HAS_ROW
            self._failed_step_code = None
        elif result is StepResult.DONE:
            self._state = CursorState.DONE
            self._failed_step_code = None
        else:
            self._state = CursorState.READY
            if result is StepResult.ERROR:
                self._failed_step_code = code
                msg = engine_message(self._lib, self._connection.handle, code)
                raise StepError(f"Cannot execute step: {msg}", query=self._query, native_code=code)
            self._logger.warning("Unrecognized step result %d for %s", code, self._query)
        return self

    def fetch(self):
        return self.step()._state is CursorState.HAS_ROW

    def reset(self):
        handle = self._require_handle()

        code = self._lib.sqlite3_reset(handle)
        # The cursor is rewound whatever reset returns.
        failed_step_code = self._failed_step_code
        self._state = CursorState.READY
        self._last_result = None
        self._failed_step_code = None

        # After a failed step, reset reports that step's code again.
        if code != SQLITE_OK and code != failed_step_code:
            raise ResetError(f"Cannot reset query: {engine_message(self._lib, self._connection.handle, code)}",
                             query=self._query, phase=ResetPhase.CURSOR, native_code=code)

        code = self._lib.sqlite3_clear_bindings(handle)
        if code != SQLITE_OK:
            raise ResetError(f"Cannot reset bindings: {engine_message(self._lib, self._connection.handle, code)}",
                             query=self._query, phase=ResetPhase.BINDINGS, native_code=code)
        return self

    def release(self):
        """Finalize the native handle. Safe to call any number of times."""
        if self._finalizer is not None:
            self._finalizer()
        if self._handle is not None:
            self._handle = None
            self._connection._untrack_statement(self)

    # Columns

    @property
    def column_count(self):
        return self._lib.sqlite3_column_count(self._require_handle())

    def column_name(self, column):
        name = self._lib.sqlite3_column_name(self._require_handle(), column)
        return name.decode("utf-8") if name else ""

    @property
    def columns(self):
        return tuple(self.column_name(i) for i in range(self.column_count))

    def _require_row(self, column):
        handle = self._require_handle()
        if self._state is not CursorState.HAS_ROW:
            raise ProgrammingError(f"No current row ({self._state.value}) for {self._query}")
        count = self._lib.sqlite3_column_count(handle)
        if not 0 <= column < count:
            raise ProgrammingError(f"Column index {column} out of range for {count} column(s)")
        return handle

    def _text(self, handle, column):
        ptr = self._lib.sqlite3_column_text(handle, column)
        if not ptr:
            return ""
        size = self._lib.sqlite3_column_bytes(handle, column)
        return ctypes.string_at(ptr, size).decode("utf-8", errors="replace")

    def _blob(self, handle, column):
        ptr = self._lib.sqlite3_column_blob(handle, column)
        if not ptr:
            return b""
        size = self._lib.sqlite3_column_bytes(handle, column)
        return ctypes.string_at(ptr, size)

    def column_type(self, column):
        """One of native.SQLITE_INTEGER, SQLITE_FLOAT, SQLITE_TEXT, SQLITE_BLOB, SQLITE_NULL."""
        return self._lib.sqlite3_column_type(self._require_row(column), column)

    def is_null(self, column):
        return self.column_type(column) == native.SQLITE_NULL

    def get_int(self, column):
        return self._lib.sqlite3_column_int(self._require_row(column), column)

    def get_int64(self, column):
        return self._lib.sqlite3_column_int64(self._require_row(column), column)

    def get_double(self, column):
        return self._lib.sqlite3_column_double(self._require_row(column), column)

    def get_text(self, column):
        return self._text(self._require_row(column), column)

    def get_blob(self, column):
        return self._blob(self._require_row(column), column)

    def row(self):
        """The current row as a tuple of None/int/float/str/bytes."""
        handle = self._require_handle()
        if self._state is not CursorState.HAS_ROW:
            raise ProgrammingError(f"No current row ({self._state.value}) for {self._query}")
        lib = self._lib
        values = []
        for i in range(lib.sqlite3_column_count(handle)):
            kind = lib.sqlite3_column_type(handle, i)
            if kind == native.SQLITE_INTEGER:
                values.append(lib.sqlite3_column_int64(handle, i))
            elif kind == native.SQLITE_FLOAT:
                values.append(lib.sqlite3_column_double(handle, i))
            elif kind == native.SQLITE_TEXT:
                values.append(self._text(handle, i))
            elif kind == native.SQLITE_BLOB:
                values.append(self._blob(handle, i))
            else:
                values.append(None)
        return tuple(values)
