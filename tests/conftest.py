import collections

import pytest

import litestmt
from litestmt.native import load_library


class NativeProxy:
    """Stands in for the SQLite library object handed to a connection.

    Everything is forwarded to the real library, except that finalize calls
    are counted per handle and entry points registered with ``fail()`` return
    the given result code without running.
    """

    def __init__(self, lib):
        self._lib = lib
        self.finalized = collections.Counter()
        self.failures = {}
        self.calls = collections.Counter()

    def fail(self, name, code):
        self.failures[name] = code

    def heal(self, name):
        self.failures.pop(name, None)

    def __getattr__(self, name):
        real = getattr(self._lib, name)
        if name == "sqlite3_finalize":
            def finalize(handle):
                self.finalized[handle] += 1
                return real(handle)
            return finalize
        if name in self.failures:
            code = self.failures[name]

            def failing(*args):
                self.calls[name] += 1
                return code
            return failing
        return real


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def conn():
    conn = litestmt.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def proxy():
    return NativeProxy(load_library())


@pytest.fixture
def proxy_conn(proxy):
    conn = litestmt.connect(":memory:", lib=proxy)
    yield conn
    conn.close()


@pytest.fixture
def people(conn):
    conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT, grp TEXT)")
    for row in [(1, "alice", "a"), (2, "bob", "a"), (3, "carol", "a"), (10, "dave", "b"), (20, "erin", "b")]:
        conn.execute("INSERT INTO t VALUES (?, ?, ?)", row)
    return conn
