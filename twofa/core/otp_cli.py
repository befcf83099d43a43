#!/usr/bin/env python3
"""
otp_cli.py - command line interface for the local TOTP account store.

Subcommands:
- (none), tui        : interactive UI
- list, ls           : all accounts with their current codes
- add                : add from a secret key, an otpauth:// URI, the clipboard or a QR image
- get                : print the code of the first matching account
- copy, cp           : copy that code to the clipboard
- remove, rm, delete : delete an account
- rename             : change issuer / account name
- redefine           : replace secret / digits / period
- show               : print the otpauth:// URI (optionally as a QR code)
- watch              : real-time codes until Ctrl+C

A bare word that is not a subcommand is treated as ``get <word>``.
"""

import argparse
import logging
import sys
import time

import qrcode

from twofa import __version__
from twofa.config import DEFAULT_DIGITS, DEFAULT_TIME_STEP
from twofa.core import clipboard, onboarding
from twofa.core.clipboard import ClipboardError
from twofa.core.otp_core import (
    OTPError,
    format_code,
    format_otpauth_uri,
    generate_totp,
    seconds_until_next_step,
    totp,
)
from twofa.database import db_manager
from twofa.database.db_manager import StorageError, display_name
from twofa.database.setup_database import setup_database

logger = logging.getLogger(__name__)


def fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _lookup(query: str) -> dict:
    record = db_manager.find_account(query)
    if record is None:
        fail(f'No account found matching "{query}"')
    return record


def _code(record: dict) -> str:
    return generate_totp(record["secret"], record.get("digits", DEFAULT_DIGITS),
                         record.get("period", DEFAULT_TIME_STEP))


# --- CLI command handlers ---
def cmd_list(args):
    accounts = db_manager.get_accounts()
    if not accounts:
        print("No accounts found. Add one with: 2fa add <secret>")
        return

    now = int(time.time())
    print(f"\n  Codes refresh in {seconds_until_next_step(DEFAULT_TIME_STEP, now)}s\n")
    for record in accounts:
        try:
            code = format_code(generate_totp(record["secret"], record.get("digits", DEFAULT_DIGITS),
                                             record.get("period", DEFAULT_TIME_STEP), now))
        except OTPError as e:
            logger.debug("Cannot generate code for %s: %s", record.get("id"), e)
            code = "(invalid)"
        print(f"  {code}  {display_name(record)}")
    print()


def cmd_add(args):
    if args.clipboard:
        print("Reading clipboard...")
        cred = onboarding.credential_from_clipboard(name=args.name)
    elif args.image:
        cred = onboarding.credential_from_image(args.image)
    elif args.secret:
        cred = onboarding.credential_from_text(
            args.secret, name=args.name, issuer=args.issuer or "",
            digits=args.digits, period=args.period,
        )
    else:
        fail("No secret provided. Usage: 2fa add <secret> [-n name]")
        return

    record = onboarding.store(cred)
    print(f"Added: {record['issuer'] or record['account']}")


def cmd_get(args):
    print(_code(_lookup(args.query)))


def cmd_copy(args):
    record = _lookup(args.query)
    code = _code(record)
    clipboard.copy_text(code)
    print(f"Copied code for {display_name(record)}: {code}")


def cmd_remove(args):
    record = _lookup(args.query)
    name = display_name(record)
    if not args.yes and sys.stdin.isatty():
        answer = input(f'Delete "{name}"? [y/N] ').strip().lower()
        if answer not in ("y", "yes"):
            print("Cancelled.")
            return
    db_manager.remove_account(record["id"])
    print(f"Removed: {name}")


def cmd_rename(args):
    if args.issuer is None and args.account is None:
        fail("Nothing to change. Use --issuer and/or --account")
    record = _lookup(args.query)
    updated = db_manager.rename_account(record["id"], issuer=args.issuer, account=args.account)
    print(f"Renamed: {display_name(record)} -> {display_name(updated)}")


def cmd_redefine(args):
    record = _lookup(args.query)
    cred = onboarding.credential_from_text(
        args.secret, name=record.get("account") or record["id"],
        issuer=record.get("issuer", ""), digits=args.digits, period=args.period,
    )
    db_manager.redefine_account(record["id"], cred.secret, cred.digits, cred.period)
    print(f"Redefined: {display_name(record)} ({cred.digits} digits, {cred.period}s)")


def cmd_show(args):
    record = _lookup(args.query)
    uri = format_otpauth_uri(
        record["secret"], record.get("account", ""), record.get("issuer", ""),
        digits=record.get("digits", DEFAULT_DIGITS), period=record.get("period", DEFAULT_TIME_STEP),
    )
    print(uri)
    if args.qr:
        qr = qrcode.QRCode(border=2)
        qr.add_data(uri)
        qr.make(fit=True)
        qr.print_ascii(invert=True)


def _watch_one(record: dict):
    digits = record.get("digits", DEFAULT_DIGITS)
    period = record.get("period", DEFAULT_TIME_STEP)
    print(f"[{display_name(record)}] Press Ctrl+C to quit. {digits}-digit code every {period}s...\n")
    last_code = None
    while True:
        code, remaining = totp(record["secret"], digits, period)
        if code != last_code:
            print(f"TOTP: {format_code(code)}  (valid ~{remaining:2d}s)")
            last_code = code
        else:
            print(f".. {remaining:2d}s left", end="\r", flush=True)
        time.sleep(1)


def _watch_all():
    print("Press Ctrl+C to quit.\n")
    last_codes = None
    while True:
        now = int(time.time())
        accounts = db_manager.get_accounts()
        rows = []
        for record in accounts:
            try:
                code, remaining = totp(record["secret"], record.get("digits", DEFAULT_DIGITS),
                                       record.get("period", DEFAULT_TIME_STEP), now)
                rows.append((format_code(code), remaining, display_name(record)))
            except OTPError:
                rows.append(("(invalid)", 0, display_name(record)))
        codes = [r[0] for r in rows]
        if codes != last_codes:
            for code, remaining, name in rows:
                print(f"  {code}  {name}  ({remaining:2d}s)")
            print()
            last_codes = codes
        else:
            print(f".. {seconds_until_next_step(DEFAULT_TIME_STEP, now):2d}s left", end="\r", flush=True)
        time.sleep(1)


def cmd_watch(args):
    try:
        if args.query:
            _watch_one(_lookup(args.query))
        else:
            _watch_all()
    except KeyboardInterrupt:
        print("\nBye.")


def cmd_tui(args):
    from twofa.core.tui import run_tui
    run_tui()


# --- Argparse builder ---
COMMANDS = {
    "tui", "list", "ls", "add", "get", "copy", "cp", "remove", "rm", "delete",
    "rename", "redefine", "show", "watch",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="2fa", description="Terminal-based TOTP authenticator")
    p.add_argument("--version", action="version", version=f"2fa v{__version__}")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_tui)

    pt = sub.add_parser("tui", help="Launch the interactive UI (default)")
    pt.set_defaults(func=cmd_tui)

    pl = sub.add_parser("list", aliases=["ls"], help="List all accounts with current codes")
    pl.set_defaults(func=cmd_list)

    pa = sub.add_parser("add", help="Add account with secret key or otpauth:// URI")
    pa.add_argument("secret", nargs="?", help="Base32 secret key or otpauth://totp/... URI")
    pa.add_argument("-n", "--name", help="Account name (required for a raw secret key)")
    pa.add_argument("-c", "--clipboard", action="store_true",
                    help="Read from clipboard (QR screenshot, URI, or key)")
    pa.add_argument("-i", "--image", help="Read a QR code from an image file")
    pa.add_argument("--issuer", help="Issuer for a raw secret key")
    pa.add_argument("--digits", type=int, default=DEFAULT_DIGITS, help="Number of code digits (raw key)")
    pa.add_argument("--period", type=int, default=DEFAULT_TIME_STEP, help="Time step in seconds (raw key)")
    pa.set_defaults(func=cmd_add)

    pg = sub.add_parser("get", help="Print code for account matching query")
    pg.add_argument("query")
    pg.set_defaults(func=cmd_get)

    pc = sub.add_parser("copy", aliases=["cp"], help="Copy code to clipboard for account matching query")
    pc.add_argument("query")
    pc.set_defaults(func=cmd_copy)

    pr = sub.add_parser("remove", aliases=["rm", "delete"], help="Remove account matching query")
    pr.add_argument("query")
    pr.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    pr.set_defaults(func=cmd_remove)

    pn = sub.add_parser("rename", help="Change issuer and/or account name")
    pn.add_argument("query")
    pn.add_argument("--issuer")
    pn.add_argument("--account")
    pn.set_defaults(func=cmd_rename)

    pd = sub.add_parser("redefine", help="Replace the secret, digits and period of an account")
    pd.add_argument("query")
    pd.add_argument("--secret", required=True, help="New base32 secret key")
    pd.add_argument("--digits", type=int, default=DEFAULT_DIGITS)
    pd.add_argument("--period", type=int, default=DEFAULT_TIME_STEP)
    pd.set_defaults(func=cmd_redefine)

    ps = sub.add_parser("show", help="Print the otpauth:// URI of an account")
    ps.add_argument("query")
    ps.add_argument("--qr", action="store_true", help="Also render it as a QR code")
    ps.set_defaults(func=cmd_show)

    pw = sub.add_parser("watch", help="Show codes in real time")
    pw.add_argument("query", nargs="?")
    pw.set_defaults(func=cmd_watch)

    return p


def _rewrite_bare_query(argv):
    # "2fa github" -> "2fa get github"
    for i, arg in enumerate(argv):
        if arg.startswith("-"):
            continue
        if arg not in COMMANDS:
            return argv[:i] + ["get"] + argv[i:]
        break
    return argv


def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(_rewrite_bare_query(argv))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        setup_database()
        args.func(args)
    except (OTPError, StorageError, ClipboardError, FileNotFoundError) as e:
        fail(str(e))


if __name__ == "__main__":
    main()
