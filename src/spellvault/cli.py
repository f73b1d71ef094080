# src/spellvault/cli.py
from __future__ import annotations

"""Command-line client for a local SQLite ledger.

    spellvault create Fireball 42
    spellvault list --query fire --status Prepared
    spellvault reveal rec-1700000000000-a1b2
    spellvault serve

Configuration comes from SPELLVAULT_* env vars (see runtime.config). Set
SPELLVAULT_WALLET_SEED to keep the same author address across invocations.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, List, Optional

from spellvault.env import load_dotenv_if_present
from spellvault.ledger.client import LedgerClient
from spellvault.runtime.errors import LedgerFault

Command = Callable[[LedgerClient, argparse.Namespace], Awaitable[Any]]


def _print(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False))


def _number(s: str) -> float | int:
    try:
        return int(s)
    except ValueError:
        return float(s)


async def _cmd_list(cl: LedgerClient, args: argparse.Namespace) -> Any:
    await cl.refresh()
    return {"items": [r.to_dict() for r in cl.records(args.query, args.status)], "counts": cl.stats()}


async def _cmd_show(cl: LedgerClient, args: argparse.Namespace) -> Any:
    return (await cl.store.read_record(args.record_id)).to_dict()


async def _cmd_create(cl: LedgerClient, args: argparse.Namespace) -> Any:
    return (await cl.create_record(args.category, args.cost)).to_dict()


async def _cmd_cast(cl: LedgerClient, args: argparse.Namespace) -> Any:
    return (await cl.cast(args.record_id)).to_dict()


async def _cmd_fail(cl: LedgerClient, args: argparse.Namespace) -> Any:
    return (await cl.fail(args.record_id)).to_dict()


async def _cmd_reveal(cl: LedgerClient, args: argparse.Namespace) -> Any:
    return {"record_id": args.record_id, "value": await cl.reveal(args.record_id)}


async def _cmd_stats(cl: LedgerClient, args: argparse.Namespace) -> Any:
    await cl.refresh()
    return cl.stats()


_COMMANDS: dict[str, Command] = {
    "list": _cmd_list,
    "show": _cmd_show,
    "create": _cmd_create,
    "cast": _cmd_cast,
    "fail": _cmd_fail,
    "reveal": _cmd_reveal,
    "stats": _cmd_stats,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="spellvault", description="Encoded record ledger client")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="Load, filter and print records (newest first)")
    p.add_argument("--query", default="", help="Substring of category or author")
    p.add_argument("--status", default="all", help="all | Prepared | Cast | Failed")

    for name, help_text in (
        ("show", "Print one record"),
        ("cast", "Mark a Prepared record as Cast"),
        ("fail", "Mark a Prepared record as Failed"),
        ("reveal", "Sign the session challenge and print the decoded value"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("record_id")

    p = sub.add_parser("create", help="Create a Prepared record")
    p.add_argument("category")
    p.add_argument("cost", type=_number)

    sub.add_parser("stats", help="Counts by status")
    sub.add_parser("serve", help="Run the HTTP API")
    return ap


async def _run(cl: LedgerClient, fn: Command, args: argparse.Namespace) -> Any:
    await cl.start()
    return await fn(cl, args)


def main(argv: Optional[List[str]] = None, *, client: Optional[LedgerClient] = None) -> int:
    load_dotenv_if_present()
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        from spellvault.api.__main__ import main as serve_main

        serve_main()
        return 0

    if client is None:
        from spellvault.runtime.client_boot import build_client

        client = build_client()

    try:
        _print(asyncio.run(_run(client, _COMMANDS[args.command], args)))
    except LedgerFault as e:
        _print({"ok": False, "error": {"code": e.code, "message": e.reason}})
        return 1
    except ValueError as e:
        _print({"ok": False, "error": {"code": "invalid_request", "message": str(e)}})
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
