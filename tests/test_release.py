import gc
import random

import pytest

import litestmt


def test_release_after_normal_completion(proxy, proxy_conn):
    with proxy_conn.prepare("SELECT 1 UNION ALL SELECT 2") as stmt:
        handle = stmt.handle
        assert list(stmt) == [(1,), (2,)]
        assert proxy.finalized[handle] == 0

    assert proxy.finalized[handle] == 1
    stmt.release()
    assert proxy.finalized[handle] == 1


def test_release_with_zero_rows(proxy, proxy_conn):
    with proxy_conn.prepare("SELECT 1 WHERE 0") as stmt:
        handle = stmt.handle
        assert stmt.fetch() is False
    assert proxy.finalized[handle] == 1


def test_failed_prepare_allocates_nothing(proxy, proxy_conn):
    with pytest.raises(litestmt.PrepareError):
        proxy_conn.prepare("SELECT FROM WHERE")
    assert sum(proxy.finalized.values()) == 0


def test_injected_prepare_failure(proxy, proxy_conn):
    proxy.fail("sqlite3_prepare_v2", litestmt.SQLITE_ERROR)
    with pytest.raises(litestmt.PrepareError) as excinfo:
        proxy_conn.prepare("SELECT 1")
    assert excinfo.value.native_code == litestmt.SQLITE_ERROR
    assert sum(proxy.finalized.values()) == 0


@pytest.mark.parametrize("entry_point, code, error", [
    ("sqlite3_bind_int64", litestmt.SQLITE_RANGE, litestmt.BindError),
    ("sqlite3_step", litestmt.SQLITE_ERROR, litestmt.StepError),
    ("sqlite3_step", litestmt.SQLITE_BUSY, litestmt.StepError),
    ("sqlite3_step", litestmt.SQLITE_MISUSE, litestmt.StepError),
    ("sqlite3_reset", litestmt.SQLITE_BUSY, litestmt.ResetError),
    ("sqlite3_clear_bindings", litestmt.SQLITE_MISUSE, litestmt.ResetError),
])
def test_single_release_on_injected_failure(proxy, proxy_conn, entry_point, code, error):
    proxy.fail(entry_point, code)
    handles = []

    with pytest.raises(error):
        with proxy_conn.prepare("SELECT ?1") as stmt:
            handles.append(stmt.handle)
            stmt.bind(1, 7)
            while stmt.fetch():
                assert stmt.get_int(0) == 7
            stmt.reset()

    assert proxy.finalized[handles[0]] == 1
    assert stmt.released


def test_release_on_garbage_collection(proxy, proxy_conn):
    stmt = proxy_conn.prepare("SELECT 1")
    handle = stmt.handle
    assert stmt.fetch()

    del stmt
    gc.collect()
    assert proxy.finalized[handle] == 1

    proxy_conn.close()
    assert proxy.finalized[handle] == 1


def test_connection_close_releases_live_statements(proxy, proxy_conn):
    first = proxy_conn.prepare("SELECT 1")
    second = proxy_conn.prepare("SELECT 2")
    assert first.fetch()

    proxy_conn.close()
    assert first.released and second.released

    handles = list(proxy.finalized)
    assert len(handles) == 2
    assert all(proxy.finalized[h] == 1 for h in handles)

    first.release()
    del second
    gc.collect()
    assert all(proxy.finalized[h] == 1 for h in handles)


def test_execute_releases_on_error(proxy, proxy_conn):
    proxy_conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")
    proxy_conn.execute("INSERT INTO t VALUES (1)")
    before = sum(proxy.finalized.values())

    with pytest.raises(litestmt.StepError):
        proxy_conn.execute("INSERT INTO t VALUES (?)", (1,))

    assert sum(proxy.finalized.values()) == before + 1


ENTRY_POINTS = [
    None,
    ("sqlite3_bind_int64", litestmt.SQLITE_RANGE),
    ("sqlite3_bind_text", litestmt.native.SQLITE_NOMEM),
    ("sqlite3_step", litestmt.SQLITE_ERROR),
    ("sqlite3_step", litestmt.SQLITE_BUSY),
    ("sqlite3_reset", litestmt.SQLITE_LOCKED),
    ("sqlite3_clear_bindings", litestmt.SQLITE_MISUSE),
]


@pytest.mark.parametrize("seed", range(25))
def test_single_release_random_sequences(proxy, proxy_conn, seed):
    rng = random.Random(seed)
    proxy_conn.execute("CREATE TABLE t (id INTEGER, name TEXT)")
    for i in range(rng.randint(0, 5)):
        proxy_conn.execute("INSERT INTO t VALUES (?, ?)", (i, f"n{i}"))

    failure = rng.choice(ENTRY_POINTS)
    fail_after = rng.randint(0, 3)
    handles = []

    try:
        with proxy_conn.prepare("SELECT id, name FROM t WHERE id >= ?1 AND name <> ?2") as stmt:
            handles.append(stmt.handle)
            before = proxy.finalized[stmt.handle]
            for rounds in range(rng.randint(1, 4)):
                if failure is not None and rounds == fail_after:
                    proxy.fail(*failure)
                stmt.bind(1, rng.randint(0, 5))
                stmt.bind(2, "n" + str(rng.randint(0, 5)))
                for _ in range(rng.randint(0, 6)):
                    if not stmt.fetch():
                        break
                    stmt.row()
                stmt.reset()
    except litestmt.DatabaseError:
        pass

    assert len(handles) == 1
    assert proxy.finalized[handles[0]] == before + 1
