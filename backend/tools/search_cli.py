# backend/tools/search_cli.py
# Filter a table (from DATABASE_URL, see backend/.env) or a JSON file of records
# from the command line. Prints token badges, then one JSON line per match.

from __future__ import annotations
import argparse, json, sys
from pathlib import Path
from typing import Any, List, Optional

from searchplus.config_loader import VALID_MATCH_MODES, get_hidden_table_prefixes, load_app_config
from searchplus.db import fetch_table_records, get_engine, list_tables
from searchplus.errors import SearchPlusError
from searchplus.logging_setup import start_log
from searchplus.search_expression import VALID_MODES
from searchplus.session import SearchSession


def load_json_records(path: Path) -> List[dict]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise SystemExit(f"{path}: expected a list of objects (or {{'records': [...]}})")
    return data


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Filter records with a SearchPlus query")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--json", type=Path, help="JSON file holding a list of records")
    src.add_argument("--table", help="Table name (optionally schema.table) from DATABASE_URL")
    src.add_argument("--list", action="store_true", help="List searchable tables and exit")
    ap.add_argument("--columns", help="Comma-separated active columns (default: all)")
    ap.add_argument("--mode", choices=VALID_MODES, help="Default combination mode")
    ap.add_argument("--match", choices=VALID_MATCH_MODES, help="Per-word match mode")
    ap.add_argument("--log-level", default="WARNING")
    ap.add_argument("--log-dir", type=Path, help="Also write a log file here (default: stderr only)")
    ap.add_argument("query", nargs="?", default="")
    args = ap.parse_args(argv)

    start_log(app_name="search_cli", level=args.log_level, log_dir=args.log_dir, to_file=args.log_dir is not None)
    cfg = load_app_config()

    if args.list:
        for name in list_tables(get_engine(), get_hidden_table_prefixes(cfg)):
            print(name)
        return 0

    try:
        records: List[Any] = load_json_records(args.json) if args.json else fetch_table_records(get_engine(), args.table)
    except SearchPlusError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    session = SearchSession.from_config(cfg, records)
    if args.columns:
        session.set_active_columns(c.strip() for c in args.columns.split(",") if c.strip())
    if args.mode:
        session.set_logic_mode(args.mode)
    if args.match:
        session.set_match_mode(args.match)
    session.set_query(args.query)

    result = session.run()
    badges = " ".join(f"[{t.category}]{t.raw}" for t in result.tokens)
    print(f"# mode={result.mode} matched={result.count} tokens={badges}")
    for record in result.matched:
        print(json.dumps(record, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
