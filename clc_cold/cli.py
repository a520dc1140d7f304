"""
Command-line entry point: ``clc-cold-wallet <command> [args]``.

One command runs per process.  Global options choose the config file,
session path, ledger URL and log level; everything else is handled by
:class:`clc_cold.commands.WalletCommands`.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, Callable

from clc_cold import __version__
from clc_cold.commands import WalletCommands
from clc_cold.config import ColdWalletConfig, load_config
from clc_cold.errors import ColdWalletError
from clc_cold.ledger_client import LedgerClient
from clc_cold.logging_config import setup_logging
from clc_cold.session import SessionStore

logger = logging.getLogger("clc_cold.cli")

PROG = "clc-cold-wallet"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=PROG, description="A CLI tool made to store CLCs locally")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--config", default=None, help="Path to a clc-cold TOML config file")
    p.add_argument("--session", default=None, help="Session file path (default ~/.clc-cold-ses)")
    p.add_argument("--ledger-url", default=None, help="Ledger base URL")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")

    sub = p.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    c = sub.add_parser("decrypt", help="Decrypt a .wallet file and load it to do operations on")
    c.add_argument("path")
    c.add_argument("-p", "--print", dest="print_wallet", action="store_true",
                   help="Print the decrypted wallet")

    c = sub.add_parser("logout", help="Encrypt the loaded wallet to <path> and unload it")
    c.add_argument("path")

    sub.add_parser("balance", aliases=["ballance"], help="Get the balance of your wallet")

    c = sub.add_parser("coins", help="Get all coins and public keys in your wallet")
    c.add_argument("-v", "--validate", action="store_true",
                   help="Check each coin is still held by its key")
    c.add_argument("--val", action="store_true", help="Show each coin's value")

    c = sub.add_parser("delete", help="Permanently delete a coin from your wallet")
    c.add_argument("id")
    c.add_argument("-c", "--confirm", action="store_true", help="Skip the retype check")

    c = sub.add_parser("add", help="Add a .coin file to your wallet")
    c.add_argument("cpath")
    c.add_argument("-v", "--validate", action="store_true",
                   help="Check the coin is held by the file's key first")

    c = sub.add_parser("private", help="Get secret of coin <id>")
    c.add_argument("id")

    c = sub.add_parser("keys", help="Generate a pair of public and private keys")
    c.add_argument("-p", "--private", dest="private_hex", default=None,
                   help="Derive the public key for this private key")

    c = sub.add_parser("transact", help="Transact coin <id> to address <addr>")
    c.add_argument("id")
    c.add_argument("addr")

    c = sub.add_parser("merge", help="Merge <vol> CLCs of coin <id> into coin <target>")
    c.add_argument("id")
    c.add_argument("target")
    c.add_argument("vol")

    c = sub.add_parser("split", help="Split off <vol> CLCs from coin <id>")
    c.add_argument("id")
    c.add_argument("vol")
    return p


_DISPATCH: dict[str, Callable[[WalletCommands, argparse.Namespace], Awaitable[int]]] = {
    "decrypt": lambda cmd, a: cmd.decrypt(a.path, a.print_wallet),
    "logout": lambda cmd, a: cmd.logout(a.path),
    "balance": lambda cmd, a: cmd.balance(),
    "ballance": lambda cmd, a: cmd.balance(),
    "coins": lambda cmd, a: cmd.coins(a.validate, a.val),
    "delete": lambda cmd, a: cmd.delete(a.id, a.confirm),
    "add": lambda cmd, a: cmd.add(a.cpath, a.validate),
    "private": lambda cmd, a: cmd.private(a.id),
    "keys": lambda cmd, a: cmd.keys(a.private_hex),
    "transact": lambda cmd, a: cmd.transact(a.id, a.addr),
    "merge": lambda cmd, a: cmd.merge(a.id, a.target, a.vol),
    "split": lambda cmd, a: cmd.split(a.id, a.vol),
}


def apply_overrides(cfg: ColdWalletConfig, args: argparse.Namespace) -> ColdWalletConfig:
    """CLI flags override config."""
    if args.session:
        cfg.session.path = args.session
    if args.ledger_url:
        cfg.ledger.base_url = args.ledger_url
    if args.log_level:
        cfg.logging.level = args.log_level.upper()
    return cfg


async def run_command(cfg: ColdWalletConfig, args: argparse.Namespace) -> int:
    store = SessionStore(cfg.session.path)
    async with LedgerClient(cfg.ledger.base_url, timeout=cfg.ledger.timeout_seconds) as client:
        commands = WalletCommands(store, client)
        return await _DISPATCH[args.command](commands, args)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = apply_overrides(load_config(args.config), args)
    except ColdWalletError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    setup_logging(cfg.logging.level, cfg.logging.format, cfg.logging.file or None, command=args.command)
    logger.debug(f"Running {args.command} against {cfg.ledger.base_url}")

    try:
        return asyncio.run(run_command(cfg, args))
    except KeyboardInterrupt:
        print("\nAborting!")
        return 130
    except EOFError:
        # Ctrl-D at a password or confirmation prompt
        print("\nAborting!")
        return 1
    except ColdWalletError as exc:
        print(f"Error: {exc}")
        return 1


def main_sync() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(main())
