"""Example: preparing a statement once and re-running it with new bindings.

Run:
    python examples/example.py

Set LITESTMT_NATIVE_LIB=/path/to/libsqlite3.so if the library is not found
automatically, and LITESTMT_VERBOSE=1 to see statement traces.
"""

import os
import tempfile

import litestmt


def main():
    litestmt.init_logger()

    # Create a temporary database file for this example.
    db_path = os.path.join(tempfile.gettempdir(), "litestmt_example.db")

    with litestmt.connect(db_path) as conn:
        conn.execute("DROP TABLE IF EXISTS users")
        conn.execute("""
            CREATE TABLE users (
                id    INTEGER PRIMARY KEY,
                name  TEXT NOT NULL,
                email TEXT UNIQUE
            )
        """)

        # One compiled INSERT, reset and rebound for every row.
        users = [
            ("Alice", "alice@example.com"),
            ("Bob", "bob@example.com"),
            ("Carol", "carol@example.com"),
        ]
        with conn.prepare("INSERT INTO users (name, email) VALUES (?1, ?2)") as insert:
            for name, email in users:
                insert.bind(1, name).bind(2, email)
                insert.step()
                insert.reset()

        # Cursor-style reads with typed column access.
        print("All users:")
        with conn.prepare("SELECT id, name, email FROM users ORDER BY id") as stmt:
            while stmt.fetch():
                print(f"  id={stmt.get_int64(0)}  name={stmt.get_text(1)}  email={stmt.get_text(2)}")

        # Errors carry the engine code and the offending SQL.
        try:
            conn.execute("INSERT INTO users (name, email) VALUES (?, ?)", ("Bobby", "bob@example.com"))
        except litestmt.StepError as e:
            print(f"\nDuplicate email rejected: {litestmt.result_name(e.native_code)}")

        # Transaction example.
        conn.execute("BEGIN")
        conn.execute("INSERT INTO users (name, email) VALUES (?, ?)", ("Dave", "dave@example.com"))
        conn.execute("COMMIT")

        count = conn.query("SELECT count(*) FROM users")[0][0]
        print(f"\nTotal users after transaction: {count}")

    # Clean up.
    for suffix in ("", "-journal"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass

    print("\nDone.")


if __name__ == "__main__":
    main()
