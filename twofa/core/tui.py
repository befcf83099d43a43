"""Interactive terminal UI: live code list with a countdown, plus an add/copy/delete menu."""

import logging
import time
from typing import List, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from twofa.config import DEFAULT_DIGITS, DEFAULT_TIME_STEP
from twofa.core import clipboard, onboarding
from twofa.core.clipboard import ClipboardError
from twofa.core.onboarding import MissingName
from twofa.core.otp_core import OTPError, format_code, generate_totp, seconds_until_next_step
from twofa.database import db_manager
from twofa.database.db_manager import StorageError, display_name

logger = logging.getLogger(__name__)

console = Console()

MENU_HELP = "[c] Copy  [a] Add  [d] Delete  [r] Resume  [q] Quit"


def progress_bar(remaining: int, period: int = DEFAULT_TIME_STEP) -> str:
    remaining = max(0, min(remaining, period))
    return "█" * remaining + "░" * (period - remaining)


def render(accounts: List[dict], now: Optional[int] = None, message: Optional[str] = None) -> Group:
    """Build the screen for ``accounts`` at ``now`` (epoch seconds)."""
    now = int(time.time()) if now is None else now
    remaining = seconds_until_next_step(DEFAULT_TIME_STEP, now)

    header = Text.assemble(("2FA", "bold"), f"   {remaining}s until refresh\n", progress_bar(remaining))

    if not accounts:
        body = Text("No accounts yet\nPress Ctrl+C, then [a] to add your first account", style="dim")
    else:
        body = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
        body.add_column("#", justify="right")
        body.add_column("Account")
        body.add_column("Code", justify="right", style="bold")
        body.add_column("Left", justify="right", style="dim")
        for i, record in enumerate(accounts, 1):
            period = record.get("period", DEFAULT_TIME_STEP)
            try:
                code = format_code(generate_totp(record["secret"], record.get("digits", DEFAULT_DIGITS),
                                                 period, now))
                left = f"{seconds_until_next_step(period, now)}s"
            except OTPError:
                code, left = "(invalid)", "-"
            body.add_row(str(i), display_name(record), code, left)

    parts = [header, Text(""), body]
    if message:
        parts.extend([Text(""), Text(message, style="italic")])
    parts.extend([Text(""), Text("[Ctrl+C] Menu", style="dim")])
    return Group(*parts)


def live_view(message: Optional[str] = None) -> None:
    """Redraw once per second until Ctrl+C."""
    try:
        with Live(render(db_manager.get_accounts(), message=message), console=console,
                  refresh_per_second=4, screen=False) as live:
            while True:
                time.sleep(1)
                live.update(render(db_manager.get_accounts()))
    except KeyboardInterrupt:
        pass


def _pick(accounts: List[dict]) -> Optional[dict]:
    if not accounts:
        console.print("No accounts yet", style="dim")
        return None
    index = IntPrompt.ask("Account #", default=1)
    if not 1 <= index <= len(accounts):
        console.print(f"No account #{index}", style="red")
        return None
    return accounts[index - 1]


def action_copy(accounts: List[dict]) -> Optional[str]:
    record = _pick(accounts)
    if record is None:
        return None
    code = generate_totp(record["secret"], record.get("digits", DEFAULT_DIGITS),
                         record.get("period", DEFAULT_TIME_STEP))
    clipboard.copy_text(code)
    return f"Copied: {code}"


def action_add() -> Optional[str]:
    console.print("Add New Account", style="bold")
    console.print("Paste a secret key or otpauth:// URI, or leave empty to read the clipboard\n"
                  "(QR code screenshot, URI, or key).", style="dim")
    text = Prompt.ask("Key or URI", default="", show_default=False).strip()
    if text:
        name = None
        if not onboarding.looks_like_uri(text):
            name = Prompt.ask("Name this account").strip() or None
        cred = onboarding.credential_from_text(text, name=name)
    else:
        try:
            cred = onboarding.credential_from_clipboard()
        except MissingName:
            name = Prompt.ask("Secret key detected. Name this account").strip() or None
            cred = onboarding.credential_from_clipboard(name=name)
    record = onboarding.store(cred)
    return f"Added: {record['issuer'] or record['account']}"


def action_delete(accounts: List[dict]) -> Optional[str]:
    record = _pick(accounts)
    if record is None:
        return None
    name = record.get("issuer") or record.get("account")
    if not Confirm.ask(f'Are you sure you want to delete "{name}"?', default=False):
        return None
    db_manager.remove_account(record["id"])
    return f"Deleted: {name}"


def run_tui() -> None:
    message = None
    while True:
        live_view(message)
        message = None
        accounts = db_manager.get_accounts()
        console.print(render(accounts))
        console.print(MENU_HELP, style="dim")
        try:
            choice = Prompt.ask("Action", choices=["c", "a", "d", "r", "q"], default="r")
            if choice == "q":
                return
            if choice == "c":
                message = action_copy(accounts)
            elif choice == "a":
                message = action_add()
            elif choice == "d":
                message = action_delete(accounts)
        except (OTPError, StorageError, ClipboardError) as e:
            logger.debug("Menu action failed", exc_info=True)
            message = f"Error: {e}"
        except (KeyboardInterrupt, EOFError):
            return
