"""CLI entry-point to launch the BizDesk local API or run one-shot maintenance."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from api import __version__ as API_VERSION
from api.context import AppContext
from api.server import APIServerConfig, create_app
from backup import TkSaveDialogPrompt
from core.logging_utils import configure_json_logging
from core.migrations import apply_schema
from core.paths import resolve_working_dir
from core.settings import load_settings

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765


def _resolve_bind_host(candidate: Optional[str]) -> str:
    host = (candidate or DEFAULT_HOST).strip()
    if not host:
        host = DEFAULT_HOST
    norm = host.lower()
    if norm == "localhost" or norm == "::1":
        return "127.0.0.1"
    if norm.startswith("::ffff:"):
        norm = norm.split("::ffff:")[-1]
    if norm.startswith("127."):
        return norm
    raise ValueError(
        f"Refusing to bind API server to non-loopback host '{candidate}'. BizDesk only serves on localhost."
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start the local BizDesk API service.")
    parser.add_argument("--home", default=None, help="Working directory (default: BIZDESK_HOME or user data dir)")
    parser.add_argument("--host", default=None, help="Bind host (default from settings.json)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default from settings.json)")
    parser.add_argument(
        "--dialog",
        action="store_true",
        help="Use the Tk save dialog for manual backups (otherwise manual backups are cancelled).",
    )
    parser.add_argument("--backup-now", action="store_true", help="Create one snapshot and exit.")
    parser.add_argument("--backup-info", action="store_true", help="Print backup directory status and exit.")
    parser.add_argument("--sweep-sessions", action="store_true", help="Delete expired sessions and exit.")
    return parser.parse_args(argv)


def _run_one_shot(args: argparse.Namespace, working_dir: Path, settings: dict) -> int:
    context = AppContext(working_dir, settings=settings)
    try:
        context.store.open()
        apply_schema(context.store)
        if args.backup_now:
            outcome = context.backups.create_now()
            logging.info("%s", outcome.message)
            if outcome.path:
                print(outcome.path)
            return 0 if outcome.ok else 1
        if args.backup_info:
            info = context.snapshots.get_info()
            last = info.last_backup_time.astimezone().strftime("%Y-%m-%d %H:%M:%S") if info.last_backup_time else "never"
            print(f"Backup directory: {info.backup_dir}")
            print(f"Backups kept:     {info.backup_count}")
            print(f"Last backup:      {last}")
            return 0
        removed = context.sessions.sweep_expired()
        print(f"Removed {removed} expired session(s)")
        return 0
    finally:
        context.store.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)
    working_dir = Path(args.home).expanduser().resolve() if args.home else resolve_working_dir()
    configure_json_logging(working_dir)
    settings = load_settings(working_dir)
    logging.info("BizDesk %s starting at %s (%s)", API_VERSION, working_dir, datetime.now().isoformat(timespec="seconds"))

    if args.backup_now or args.backup_info or args.sweep_sessions:
        return _run_one_shot(args, working_dir, settings)

    api_settings = settings.get("api") if isinstance(settings.get("api"), dict) else {}
    try:
        host = _resolve_bind_host(args.host or api_settings.get("host"))
    except ValueError as exc:
        logging.error("%s", exc)
        return 2
    port = args.port or api_settings.get("port") or DEFAULT_PORT
    try:
        port = int(port)
    except (TypeError, ValueError):
        port = DEFAULT_PORT

    extension = str((settings.get("database") or {}).get("backup_extension") or "db")
    prompt = TkSaveDialogPrompt(extension=extension) if args.dialog else None
    context = AppContext(working_dir, settings=settings, prompt=prompt)
    app = create_app(APIServerConfig(context=context, app_version=API_VERSION))

    print(f"API listening on http://{host}:{port}", flush=True)

    uvicorn_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=False,
    )
    server = uvicorn.Server(uvicorn_config)
    try:
        server.run()
    finally:
        context.shutdown()
    return 0 if server.started else 1


if __name__ == "__main__":
    sys.exit(main())
