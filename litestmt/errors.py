import enum
import json

from .native import result_name


# DB-API 2.0 exceptions
class Error(Exception):
    pass


class Warning(Exception):
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class InternalError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class DataError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


class ResetPhase(enum.Enum):
    """Which half of a reset failed."""

    CURSOR = "cursor"
    BINDINGS = "bindings"


def _with_context(message, **ctx):
    ctx = {k: v for k, v in ctx.items() if v is not None}
    return message + "\nContext: " + json.dumps(ctx, ensure_ascii=False)


class PrepareError(ProgrammingError):
    """The query text failed to compile. No statement exists afterwards."""

    def __init__(self, message, *, query, native_code):
        self.query = query
        self.native_code = native_code
        super().__init__(_with_context(
            message, native_code=native_code, native_name=result_name(native_code), sql=query,
        ))


class BindError(ProgrammingError):
    """A parameter bind was rejected. The statement stays usable."""

    def __init__(self, message, *, query, param_index, native_code):
        self.query = query
        self.param_index = param_index
        self.native_code = native_code
        super().__init__(_with_context(
            message, native_code=native_code, native_name=result_name(native_code),
            sql=query, param_index=param_index,
        ))


class StepError(OperationalError):
    """Execution failed mid-query. Reset or release the statement before reuse."""

    def __init__(self, message, *, query, native_code):
        self.query = query
        self.native_code = native_code
        super().__init__(_with_context(
            message, native_code=native_code, native_name=result_name(native_code), sql=query,
        ))


class ResetError(OperationalError):
    """Clearing the cursor or the bindings failed; release and re-prepare."""

    def __init__(self, message, *, query, phase, native_code):
        self.query = query
        self.phase = phase
        self.native_code = native_code
        super().__init__(_with_context(
            message, native_code=native_code, native_name=result_name(native_code),
            sql=query, phase=phase.value,
        ))


def engine_message(lib, db_handle, code):
    # The connection's message only describes `code` when they agree;
    # fall back to the static text for the code otherwise.
    if db_handle:
        msg = lib.sqlite3_errmsg(db_handle)
        if msg and (lib.sqlite3_errcode(db_handle) & 0xFF) == (code & 0xFF):
            return msg.decode("utf-8", errors="replace")
    msg = lib.sqlite3_errstr(code)
    return msg.decode("utf-8", errors="replace") if msg else f"Unknown error {code}"
