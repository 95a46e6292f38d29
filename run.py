"""Crawler Depths CLI entry point.

Provides subcommands for regenerating the dungeon, seeding static content,
inspecting floors, editing GameConfig rows, promoting admins and running the
HTTP server. Accepts configuration via flags and environment variables, with
optional .env loading.

Run `python run.py --help` for details.
"""

import argparse
import json
import os
import sys
from pathlib import Path
from textwrap import dedent

from colorama import Fore, Style
from colorama import init as _color_init
from dotenv import load_dotenv

_color_init()
# Disable colors if output is not a real terminal (e.g., during pytest capture)
try:
    _COLOR_ENABLED = sys.stdout.isatty()
except (AttributeError, ValueError):  # pragma: no cover - detached stdout
    _COLOR_ENABLED = False

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def _load_version() -> str:
    try:
        return Path(__file__).with_name("VERSION").read_text(encoding="utf-8").strip()
    except OSError:
        return "0.1.0"


__version__ = _load_version()


def parse_args(argv: list[str]) -> argparse.Namespace:
    description = """
    Crawler Depths dungeon tooling

    Regenerate the ten-floor dungeon, seed floors and factions, inspect the
    generated geometry or run the admin HTTP server. Generation tunables come
    from the GameConfig row 'dungeon_generation', DUNGEON_* environment
    variables and the flags below, in increasing precedence.
    """

    epilog = dedent(
        """
        Environment variables:
          HOST              Bind address for the web server (default: 0.0.0.0)
          PORT              Port for the web server (default: 5000)
          DATABASE_URL      SQLAlchemy database URI (default: sqlite:///instance/crawler.db)
          DUNGEON_<FIELD>   Any generation tunable, e.g. DUNGEON_MIN_ROOMS=150
          CRAWLER_LOG_JSON  Emit structured log lines as JSON objects

        Examples:
          # First run: create tables, floors and factions
          python run.py seed-content

          # Regenerate every floor with a fixed seed
          python run.py generate --seed 1234

          # Preview a run without writing rooms (prints the summary as JSON)
          python run.py generate --dry-run --json

          # Per-floor room / connection / faction counts
          python run.py floors

          # Persist a tunable override
          python run.py config-set dungeon_generation '{"min_rooms": 150}'

        Exit codes: 0 success, 2 partial generation (some floors skipped or failed),
        1 fatal error or no floor generated at all.
        """
    )

    parser = argparse.ArgumentParser(
        prog="crawler",
        description=dedent(description),
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        dest="env_file",
        help="Path to a .env file to load before processing flags",
    )
    parser.add_argument(
        "--db",
        dest="db_uri",
        default=None,
        help="Database URI (default: env DATABASE_URL or sqlite:///instance/crawler.db)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Crawler Depths {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    gen_parser = subparsers.add_parser(
        "generate",
        help="Clear and regenerate every dungeon floor",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    gen_parser.add_argument("--seed", type=int, default=None, help="Deterministic seed (default: random)")
    gen_parser.add_argument("--floors", type=int, default=None, help="Number of floors to generate (default: 10)")
    gen_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Read floors/factions from the database but keep generated rooms in memory",
    )
    gen_parser.add_argument("--json", action="store_true", help="Print the generation summary as JSON")
    gen_parser.set_defaults(command="generate")

    seed_parser = subparsers.add_parser(
        "seed-content",
        help="Create tables and insert missing floors and factions",
    )
    seed_parser.set_defaults(command="seed-content")

    floors_parser = subparsers.add_parser("floors", help="Show per-floor room, connection and faction counts")
    floors_parser.add_argument("--json", action="store_true", help="Print counts as JSON")
    floors_parser.set_defaults(command="floors")

    cfg_get_parser = subparsers.add_parser(
        "config-get",
        help="Print a GameConfig value by key",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    cfg_get_parser.add_argument("key", help="Config key")
    cfg_get_parser.set_defaults(command="config-get")

    cfg_set_parser = subparsers.add_parser(
        "config-set",
        help="Set a GameConfig key to a value (raw string)",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    cfg_set_parser.add_argument("key", help="Config key")
    cfg_set_parser.add_argument("value", help="Raw value (quote JSON externally)")
    cfg_set_parser.set_defaults(command="config-set")

    mk_admin = subparsers.add_parser(
        "make-admin",
        help="Promote a user to admin role (creates if missing with password 'changeme')",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    mk_admin.add_argument("username", help="Username to promote")
    mk_admin.set_defaults(command="make-admin")

    server_parser = subparsers.add_parser(
        "server",
        help="Run the admin HTTP server",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    server_parser.add_argument("--host", default=None, help="Host interface to bind (default: env HOST or 0.0.0.0)")
    server_parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: env PORT or 5000)")
    server_parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    server_parser.set_defaults(command="server")

    # If no subcommand provided, default to server
    if len(argv) == 0:
        argv = ["server"]

    return parser.parse_args(argv)


def _label(text: str) -> str:
    return f"{Fore.YELLOW}{text}{Style.RESET_ALL}" if _COLOR_ENABLED else text


def _value(val) -> str:
    return f"{Fore.GREEN}{val}{Style.RESET_ALL}" if _COLOR_ENABLED else str(val)


def _error(text: str) -> str:
    return f"{Fore.RED}{text}{Style.RESET_ALL}" if _COLOR_ENABLED else text


def _print_summary(summary) -> None:
    divider = (Fore.MAGENTA + "=" * 60 + Style.RESET_ALL) if _COLOR_ENABLED else "=" * 60
    print(divider)
    print(f"  {_label('Seed:'):14} {_value(summary.seed)}")
    print(f"  {_label('Rooms:'):14} {_value(summary.rooms)}")
    print(f"  {_label('Connections:'):14} {_value(summary.connections)}")
    print(f"  {_label('Runtime:'):14} {_value(str(summary.runtime_ms) + ' ms')}")
    print(divider)
    print(f"  {'floor':>5} {'rooms':>6} {'conns':>6} {'repairs':>8} {'secret':>7} {'factions':>9} {'unclaimed':>10}")
    for f in summary.floors:
        print(
            f"  {f.floor_number:>5} {f.rooms:>6} {f.connections:>6} {f.repairs:>8} "
            f"{f.secret_passages:>7} {len(f.faction_rooms):>9} {f.unclaimed:>10}"
        )
    for issue in summary.skipped:
        print(_error(f"  floor {issue.floor_number} skipped at {issue.stage}: {issue.error}"))
    for issue in summary.failed:
        print(_error(f"  floor {issue.floor_number} failed at {issue.stage}: {issue.error}"))
    print(divider)


def cmd_generate(args) -> int:
    from app import create_app
    from app.dungeon import GenerationConfig, MemoryDungeonStorage, SQLAlchemyDungeonStorage, generate_full_dungeon
    from app.dungeon.errors import FatalSetupFailure

    app = create_app()
    with app.app_context():
        try:
            cfg = GenerationConfig.load(seed=args.seed, floor_count=args.floors)
        except ValueError as exc:
            print(_error(f"[ERROR] invalid generation config: {exc}"))
            return EXIT_FATAL
        storage = SQLAlchemyDungeonStorage()
        try:
            if args.dry_run:
                storage = MemoryDungeonStorage(floors=storage.get_floors(), factions=storage.get_factions())
            summary = generate_full_dungeon(storage=storage, config=cfg)
        except FatalSetupFailure as exc:
            print(_error(f"[ERROR] {exc}"))
            return EXIT_FATAL
        except Exception as exc:  # PersistenceFailure while reading for a dry run
            print(_error(f"[ERROR] {type(exc).__name__}: {exc}"))
            return EXIT_FATAL
    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        _print_summary(summary)
    if summary.ok:
        return EXIT_OK
    return EXIT_PARTIAL if summary.partial else EXIT_FATAL


def cmd_seed_content(args) -> int:
    from app.server import init_db

    created = init_db(seed_content=True)
    print(f"{_label('Floors created:')} {_value(created.get('floors', 0))}")
    print(f"{_label('Factions created:')} {_value(created.get('factions', 0))}")
    return EXIT_OK


def cmd_floors(args) -> int:
    from app import create_app
    from app.routes.admin import collect_floor_counts

    app = create_app()
    with app.app_context():
        rows = collect_floor_counts()
    if args.json:
        print(json.dumps(rows, indent=2))
        return EXIT_OK
    if not rows:
        print("No floors found; run `python run.py seed-content` first.")
        return EXIT_OK
    for row in rows:
        factions = ", ".join(f"{k}={v}" for k, v in sorted(row["factions"].items())) or "-"
        print(
            f"{_label(str(row['floor_number']).rjust(2))} {row['name']:<28} "
            f"rooms={_value(row['rooms'])} connections={_value(row['connections'])} factions: {factions}"
        )
    return EXIT_OK


def cmd_config_get(args) -> int:
    from app import create_app
    from app.models.models import GameConfig

    app = create_app()
    with app.app_context():
        val = GameConfig.get(args.key)
    if val is None:
        print(_error(f"[ERROR] no config value for {args.key!r}"))
        return EXIT_FATAL
    print(val)
    return EXIT_OK


def cmd_config_set(args) -> int:
    from app import create_app
    from app.models.models import GameConfig

    app = create_app()
    with app.app_context():
        GameConfig.set(args.key, args.value)
    print(f"{_label('Set')} {args.key} = {_value(args.value)}")
    return EXIT_OK


def cmd_make_admin(args) -> int:
    from app import create_app, db
    from app.models.models import User

    app = create_app()
    with app.app_context():
        user = User.query.filter_by(username=args.username).first()
        if not user:
            user = User(username=args.username, role="admin")
            user.set_password("changeme")
            db.session.add(user)
            print(f"[INFO] Created user {args.username!r} with password 'changeme'")
        else:
            user.role = "admin"
        db.session.commit()
    print(f"{_label('Admin:')} {_value(args.username)}")
    return EXIT_OK


def cmd_server(args) -> int:
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "5000"))
    from app.logging_utils import log
    from app.server import start_server

    divider = (Fore.MAGENTA + "=" * 40 + Style.RESET_ALL) if _COLOR_ENABLED else "=" * 40
    title = f"{Fore.CYAN}{Style.BRIGHT}Crawler Depths Server{Style.RESET_ALL}" if _COLOR_ENABLED else "Crawler Depths Server"
    lines = [
        divider,
        f"  {title}",
        divider,
        f"  {_label('Host:'):12} {_value(host)}",
        f"  {_label('Port:'):12} {_value(port)}",
        f"  {_label('Database:'):12} {_value(os.getenv('DATABASE_URL') or 'auto (instance/crawler.db)')}",
        divider,
        "",
    ]
    print("\n".join(lines))
    log.info(event="startup", host=host, port=port)
    start_server(host=host, port=port, debug=args.debug)
    return EXIT_OK


COMMANDS = {
    "generate": cmd_generate,
    "seed-content": cmd_seed_content,
    "floors": cmd_floors,
    "config-get": cmd_config_get,
    "config-set": cmd_config_set,
    "make-admin": cmd_make_admin,
    "server": cmd_server,
}


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    if args.env_file:
        load_dotenv(args.env_file, override=True)
    else:
        # Load default .env if present (no error if missing)
        load_dotenv()

    # Make DATABASE_URL available to the Flask app BEFORE importing it
    if args.db_uri:
        os.environ["DATABASE_URL"] = args.db_uri

    from app.server import configure_logging

    configure_logging()
    return COMMANDS[args.command](args)


def _console_main():  # pragma: no cover - installed `crawler` script
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    _console_main()
