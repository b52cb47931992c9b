"""Command line interface for filedrop package."""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import QueueStatusDisplay, render_configuration_summary
from .errors import StagingError
from .models import UploadConfig
from .services.api_client import HTTPAPIClient
from .services.preview import PreviewService
from .services.registrar import AppSheetRecordRegistrar, JsonlRecordRegistrar
from .services.storage import HTTPStorageTransport, LocalStorageTransport, SimulatedStorageTransport
from .session import FileDropSession

DEFAULT_APPSHEET_API_URL = "https://api.appsheet.com/api/v2"
DEFAULT_APPSHEET_TABLE = "Files"
DEFAULT_RECORDS_FILE = "filedrop-records.jsonl"
DEFAULT_STORAGE_DIR = "filedrop-storage"

STORAGE_KINDS = ("simulated", "local", "http")
REGISTRAR_KINDS = ("jsonl", "appsheet")


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level and not os.getenv("LOG_LEVEL")):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    """Parse an item timeout; 0, 'none' and 'off' disable it."""
    if value is None:
        return UploadConfig.item_timeout
    text = str(value).strip().lower()
    if text in {"", "0", "none", "off"}:
        return None
    try:
        timeout = float(text)
    except ValueError as exc:
        raise CLIError(f"invalid item timeout: {value}") from exc
    if timeout < 0:
        raise CLIError(f"invalid item timeout: {value}")
    return timeout


def _build_config(args: argparse.Namespace) -> UploadConfig:
    timeout_raw = args.item_timeout if args.item_timeout is not None else os.getenv("FILEDROP_ITEM_TIMEOUT")
    created_by = args.created_by or os.getenv("FILEDROP_CREATED_BY") or UploadConfig.created_by
    kwargs = {
        "item_timeout": _parse_timeout(timeout_raw),
        "created_by": created_by,
    }
    storage_url = args.storage_url or os.getenv("FILEDROP_STORAGE_URL")
    if storage_url:
        kwargs["storage_base_url"] = storage_url
    if args.simulated_delay is not None:
        kwargs["simulated_delay"] = args.simulated_delay
    return UploadConfig(**kwargs)


async def _build_transport(
    kind: str,
    config: UploadConfig,
    storage_dir: Path,
    stack: contextlib.AsyncExitStack,
):
    if kind == "simulated":
        return SimulatedStorageTransport(config)
    if kind == "local":
        return LocalStorageTransport(storage_dir)
    if kind == "http":
        if config.storage_base_url == UploadConfig.storage_base_url:
            raise CLIError("http storage requires --storage-url or FILEDROP_STORAGE_URL")
        api_client = await stack.enter_async_context(HTTPAPIClient(config.storage_base_url))
        return HTTPStorageTransport(api_client, config.storage_base_url)
    raise CLIError(f"unknown storage transport: {kind}")


async def _build_registrar(
    kind: str,
    records_file: Path,
    stack: contextlib.AsyncExitStack,
):
    if kind == "jsonl":
        return JsonlRecordRegistrar(records_file)
    if kind == "appsheet":
        app_id = os.getenv("APPSHEET_APP_ID")
        access_key = os.getenv("APPSHEET_ACCESS_KEY")
        if not app_id:
            raise CLIError("APPSHEET_APP_ID environment variable is not set")
        if not access_key:
            raise CLIError("APPSHEET_ACCESS_KEY environment variable is not set")
        api_url = os.getenv("APPSHEET_API_URL") or DEFAULT_APPSHEET_API_URL
        table = os.getenv("APPSHEET_TABLE") or DEFAULT_APPSHEET_TABLE
        api_client = await stack.enter_async_context(
            HTTPAPIClient(api_url, headers={"ApplicationAccessKey": access_key})
        )
        return AppSheetRecordRegistrar(api_client, app_id, table)
    raise CLIError(f"unknown record registrar: {kind}")


async def _run_upload(
    paths: List[Path],
    config: UploadConfig,
    storage_kind: str,
    storage_dir: Path,
    registrar_kind: str,
    records_file: Path,
    retries: int,
) -> int:
    display = QueueStatusDisplay()

    async with contextlib.AsyncExitStack() as stack:
        transport = await _build_transport(storage_kind, config, storage_dir, stack)
        registrar = await _build_registrar(registrar_kind, records_file, stack)

        session = FileDropSession(
            transport,
            registrar,
            config,
            preview_renderer=PreviewService(config),
        )
        session.orchestrator.on_item_status(display.on_item_status)
        session.orchestrator.on_batch_complete(display.on_batch_complete)
        session.orchestrator.on_batch_error(display.on_batch_error)

        try:
            staged = session.stage(paths)
        except StagingError as exc:
            raise CLIError(str(exc)) from exc
        if not staged:
            raise CLIError("no files found to upload")

        try:
            outcome = await session.submit()
            attempt = 0
            while session.items and attempt < retries:
                attempt += 1
                display.on_retry(len(session.items), attempt, retries)
                outcome = await session.submit()

            display.render_queue(session.items)
            return 0 if outcome.error is None and not session.items else 1
        finally:
            session.clear()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filedrop",
        description="Stage files and upload them: store bytes, then register a record per file.",
    )
    parser.add_argument("paths", nargs="*", type=Path, help="Files or folders to stage")
    parser.add_argument(
        "-s",
        "--storage",
        choices=STORAGE_KINDS,
        default=None,
        help="Storage transport (default from FILEDROP_STORAGE or 'simulated')",
    )
    parser.add_argument(
        "--storage-url",
        default=None,
        help="Base URL for http storage / public URL prefix for simulated storage",
    )
    parser.add_argument(
        "--storage-dir",
        type=Path,
        default=None,
        help=f"Directory for local storage (default from FILEDROP_STORAGE_DIR or {DEFAULT_STORAGE_DIR})",
    )
    parser.add_argument(
        "-r",
        "--registrar",
        choices=REGISTRAR_KINDS,
        default=None,
        help="Record registrar (default from FILEDROP_REGISTRAR or 'jsonl')",
    )
    parser.add_argument(
        "--records-file",
        type=Path,
        default=None,
        help=f"JSON-lines file for the jsonl registrar (default {DEFAULT_RECORDS_FILE})",
    )
    parser.add_argument("--created-by", default=None, help="Value for the createdby record field")
    parser.add_argument(
        "-t",
        "--item-timeout",
        default=None,
        help="Per-file timeout in seconds (0 or 'none' disables, default 120)",
    )
    parser.add_argument(
        "--simulated-delay",
        type=float,
        default=None,
        help="Delay in seconds for simulated storage",
    )
    parser.add_argument(
        "--retry",
        type=int,
        default=0,
        help="Re-submit failed files up to N more times",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="filedrop (from filedrop)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if not args.paths:
        parser.print_help()
        return 0

    if args.retry < 0:
        print("ERROR: --retry must be zero or positive", file=sys.stderr)
        return 1

    storage_kind = args.storage or os.getenv("FILEDROP_STORAGE") or "simulated"
    registrar_kind = args.registrar or os.getenv("FILEDROP_REGISTRAR") or "jsonl"
    if storage_kind not in STORAGE_KINDS:
        print(f"ERROR: unknown storage transport: {storage_kind}", file=sys.stderr)
        return 1
    if registrar_kind not in REGISTRAR_KINDS:
        print(f"ERROR: unknown record registrar: {registrar_kind}", file=sys.stderr)
        return 1

    storage_dir = args.storage_dir or Path(os.getenv("FILEDROP_STORAGE_DIR") or DEFAULT_STORAGE_DIR)
    records_file = args.records_file or Path(os.getenv("FILEDROP_RECORDS_FILE") or DEFAULT_RECORDS_FILE)

    try:
        config = _build_config(args)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Paths": ", ".join(str(p) for p in args.paths),
            "Storage": storage_kind,
            "Storage URL": config.storage_base_url if storage_kind != "local" else "-",
            "Storage Dir": str(storage_dir) if storage_kind == "local" else "-",
            "Registrar": registrar_kind,
            "Records File": str(records_file) if registrar_kind == "jsonl" else "-",
            "Created By": config.created_by,
            "Item Timeout": f"{config.item_timeout:g}s" if config.item_timeout else "none",
            "Retries": args.retry,
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                paths=list(args.paths),
                config=config,
                storage_kind=storage_kind,
                storage_dir=storage_dir,
                registrar_kind=registrar_kind,
                records_file=records_file,
                retries=args.retry,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
