import os
import sys
import time

import litestmt


def run_benchmark(count=100000):
    db_path = "bench_reuse.db"
    if os.path.exists(db_path):
        os.remove(db_path)

    conn = litestmt.connect(db_path)
    conn.execute("CREATE TABLE bench (id INTEGER, val TEXT, f REAL)")

    print("Setting up data...")
    data = [(i, f"value_{i}", float(i)) for i in range(count)]

    # Prepared once, reset between rows
    start_time = time.perf_counter()
    conn.execute("BEGIN")
    with conn.prepare("INSERT INTO bench VALUES (?1, ?2, ?3)") as stmt:
        for row in data:
            stmt.bind_all(row)
            stmt.step()
            stmt.reset()
    conn.execute("COMMIT")
    end_time = time.perf_counter()
    print(f"Insert {count} rows (prepare once): {end_time - start_time:.4f}s")

    conn.execute("DELETE FROM bench")

    # Compiled again for every row
    start_time = time.perf_counter()
    conn.execute("BEGIN")
    for row in data:
        conn.execute("INSERT INTO bench VALUES (?1, ?2, ?3)", row)
    conn.execute("COMMIT")
    end_time = time.perf_counter()
    print(f"Insert {count} rows (prepare per row): {end_time - start_time:.4f}s")

    print("Benchmarking point lookups...")
    start_time = time.perf_counter()
    with conn.prepare("SELECT val FROM bench WHERE id = ?1") as stmt:
        for i in range(0, count, 10):
            stmt.bind(1, i)
            assert stmt.fetch()
            stmt.get_text(0)
            stmt.reset()
    end_time = time.perf_counter()
    print(f"Lookup {count // 10} rows: {end_time - start_time:.4f}s")

    conn.close()
    if os.path.exists(db_path):
        os.remove(db_path)


if __name__ == "__main__":
    run_benchmark(int(sys.argv[1]) if len(sys.argv) > 1 else 100000)
