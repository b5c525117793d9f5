import argparse
import json
import sys

from . import connect
from .errors import Error
from .log import init_logger, set_logger_verbose
from .native import result_name


def _parse_param(raw):
    try:
        return int(raw)
    except ValueError:
        return raw


def _jsonable(value):
    if isinstance(value, bytes):
        return {"_type": "bytes", "hex": value.hex(), "len": len(value)}
    return value


def run(db_path, sql, params):
    with connect(db_path) as conn:
        with conn.prepare(sql) as stmt:
            stmt.bind_all(params)
            columns = list(stmt.columns)
            rows = [[_jsonable(v) for v in row] for row in stmt]
        return {"ok": True, "error": None, "columns": columns, "rows": rows, "changes": conn.changes}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="litestmt", description="Execute one SQL statement.")
    parser.add_argument("--db", required=True)
    parser.add_argument("--sql", required=True)
    parser.add_argument("--param", action="append", default=[],
                        help="Positional parameter value; repeat for ?1, ?2, ...")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    init_logger()
    if args.verbose:
        set_logger_verbose()

    params = [_parse_param(p) for p in args.param]
    try:
        payload = run(args.db, args.sql, params)
    except Error as e:
        code = getattr(e, "native_code", None)
        payload = {
            "ok": False,
            "error": {
                "code": result_name(code) if isinstance(code, int) else type(e).__name__,
                "native_code": code,
                "message": str(e).split("\nContext:", 1)[0],
            },
            "rows": [],
        }
        print(json.dumps(payload))
        return 1

    print(json.dumps(payload))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
