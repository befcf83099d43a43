import json

import pytest

import twofa.core.otp_cli as cli
from twofa.database import db_manager

from conftest import RFC_SECRET


def _run(argv):
    try:
        cli.main(argv)
    except SystemExit as e:
        return e.code
    return 0


def test_add_raw_key_and_get(capsys, frozen_time):
    assert _run(["add", RFC_SECRET, "-n", "Example"]) == 0
    assert "Added: Example" in capsys.readouterr().out

    assert _run(["get", "example"]) == 0
    assert capsys.readouterr().out.strip() == "287082"


def test_add_raw_key_with_digits(capsys, frozen_time):
    _run(["add", RFC_SECRET, "-n", "Example", "--digits", "8"])
    capsys.readouterr()
    _run(["get", "example"])
    assert capsys.readouterr().out.strip() == "94287082"


def test_bare_query_prints_code(capsys, frozen_time):
    _run(["add", RFC_SECRET, "-n", "Example"])
    capsys.readouterr()
    assert _run(["examp"]) == 0
    assert capsys.readouterr().out.strip() == "287082"


def test_add_uri(capsys):
    assert _run(["add", "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP&digits=8&period=60"]) == 0
    assert "Added: GitHub" in capsys.readouterr().out
    (record,) = db_manager.get_accounts()
    assert (record["issuer"], record["account"], record["digits"], record["period"]) == ("GitHub", "alice", 8, 60)


def test_add_errors(capsys, store_path):
    assert _run(["add"]) == 1
    assert "No secret provided" in capsys.readouterr().err

    assert _run(["add", "JBSWY3DPEHPK3PXP"]) == 1
    assert "Name required" in capsys.readouterr().err

    assert _run(["add", "otpauth://hotp/x?secret=JBSWY3DPEHPK3PXP"]) == 1
    assert "Invalid otpauth:// URI" in capsys.readouterr().err

    assert _run(["add", "not-base32!", "-n", "x"]) == 1
    assert "Invalid secret key" in capsys.readouterr().err

    assert db_manager.get_accounts() == []


def test_add_from_clipboard(capsys, monkeypatch):
    monkeypatch.setattr(cli.onboarding.clipboard, "read_text",
                        lambda: "otpauth://totp/Slack:bob?secret=JBSWY3DPEHPK3PXP")
    assert _run(["add", "-c"]) == 0
    assert "Added: Slack" in capsys.readouterr().out


def test_list(capsys, frozen_time):
    _run(["list"])
    assert "No accounts found" in capsys.readouterr().out

    _run(["add", RFC_SECRET, "-n", "Example"])
    _run(["add", "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"])
    capsys.readouterr()
    assert _run(["ls"]) == 0
    out = capsys.readouterr().out
    assert "Codes refresh in 1s" in out
    assert "287 082  Example" in out
    assert "GitHub (alice)" in out


def test_list_survives_bad_secret(capsys, store_path, frozen_time):
    store_path.parent.mkdir(parents=True, exist_ok=True)
    store_path.write_text(json.dumps({"version": 1, "accounts": [
        {"id": "1", "issuer": "", "account": "broken", "secret": "!!!", "digits": 6, "period": 30,
         "createdAt": 0},
    ]}))
    assert _run(["list"]) == 0
    assert "(invalid)  broken" in capsys.readouterr().out

    assert _run(["get", "broken"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_get_unknown(capsys):
    assert _run(["get", "nothing"]) == 1
    assert 'No account found matching "nothing"' in capsys.readouterr().err


def test_copy(capsys, monkeypatch, frozen_time):
    copied = []
    monkeypatch.setattr(cli.clipboard, "copy_text", copied.append)
    _run(["add", RFC_SECRET, "-n", "Example"])
    capsys.readouterr()
    assert _run(["cp", "example"]) == 0
    assert copied == ["287082"]
    assert "Copied code for Example: 287082" in capsys.readouterr().out


def test_remove(capsys):
    _run(["add", "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"])
    capsys.readouterr()
    assert _run(["rm", "github", "-y"]) == 0
    assert "Removed: GitHub (alice)" in capsys.readouterr().out
    assert db_manager.get_accounts() == []


def test_rename(capsys):
    _run(["add", "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"])
    capsys.readouterr()
    assert _run(["rename", "alice", "--account", "alice@work"]) == 0
    assert "GitHub (alice) -> GitHub (alice@work)" in capsys.readouterr().out

    assert _run(["rename", "alice"]) == 1


def test_redefine(capsys, frozen_time):
    _run(["add", "JBSWY3DPEHPK3PXP", "-n", "Example"])
    before = db_manager.get_accounts()[0]
    assert _run(["redefine", "example", "--secret", RFC_SECRET, "--digits", "8"]) == 0
    after = db_manager.get_accounts()[0]
    assert after["id"] == before["id"]
    assert (after["secret"], after["digits"], after["period"]) == (RFC_SECRET, 8, 30)
    capsys.readouterr()
    _run(["get", "example"])
    assert capsys.readouterr().out.strip() == "94287082"


def test_show(capsys):
    _run(["add", "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"])
    capsys.readouterr()
    assert _run(["show", "github"]) == 0
    out = capsys.readouterr().out.strip()
    assert out == "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP&issuer=GitHub&algorithm=SHA1&digits=6&period=30"


def test_show_qr(capsys):
    _run(["add", "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"])
    capsys.readouterr()
    assert _run(["show", "github", "--qr"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("otpauth://totp/")
    assert len(lines) > 10


def test_watch_one_stops_on_ctrl_c(capsys, monkeypatch, frozen_time):
    _run(["add", RFC_SECRET, "-n", "Example"])
    capsys.readouterr()

    def interrupt(seconds):
        raise KeyboardInterrupt
    monkeypatch.setattr(frozen_time, "sleep", interrupt)
    assert _run(["watch", "example"]) == 0
    out = capsys.readouterr().out
    assert "TOTP: 287 082  (valid ~ 1s)" in out
    assert "Bye." in out


def test_version(capsys):
    assert _run(["--version"]) == 0
    assert "2fa v" in capsys.readouterr().out


def test_default_command_is_tui(monkeypatch):
    called = []
    monkeypatch.setattr(cli, "cmd_tui", lambda args: called.append(args))
    assert _run([]) == 0
    assert len(called) == 1


def test_add_rejects_non_positive_digits_and_period(capsys):
    assert _run(["add", "JBSWY3DPEHPK3PXP", "-n", "Mail", "--digits", "0"]) == 1
    assert "digits must be a positive integer" in capsys.readouterr().err

    assert _run(["add", "JBSWY3DPEHPK3PXP", "-n", "Mail", "--period", "0"]) == 1
    assert "period must be a positive integer" in capsys.readouterr().err
    assert db_manager.get_accounts() == []


def test_redefine_rejects_non_positive_period(capsys):
    _run(["add", "JBSWY3DPEHPK3PXP", "-n", "Mail"])
    capsys.readouterr()
    assert _run(["redefine", "mail", "--secret", RFC_SECRET, "--period", "-5"]) == 1
    assert "period must be a positive integer" in capsys.readouterr().err
    (record,) = db_manager.get_accounts()
    assert (record["secret"], record["period"]) == ("JBSWY3DPEHPK3PXP", 30)


def test_add_uppercase_uri_scheme(capsys):
    assert _run(["add", "OTPAUTH://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"]) == 0
    assert "Added: GitHub" in capsys.readouterr().out


def test_unusable_store_location_is_reported(capsys, tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    monkeypatch.setenv("TWOFA_STORAGE_FILE", str(blocker / "accounts.json"))
    assert _run(["list"]) == 1
    assert capsys.readouterr().err.startswith("Error: Cannot create account store")
