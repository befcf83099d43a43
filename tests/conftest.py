import types

import pytest

RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # ASCII "12345678901234567890"


@pytest.fixture(autouse=True)
def store_path(tmp_path, monkeypatch):
    """Every test gets its own account store; the real ~/.2fa-cli is never touched."""
    path = tmp_path / "store" / "accounts.json"
    monkeypatch.setenv("TWOFA_STORAGE_FILE", str(path))
    return path


@pytest.fixture
def frozen_time(monkeypatch):
    """Freeze the clock seen by the core and the CLI at t=59."""
    fake = types.SimpleNamespace(time=lambda: 59.0, sleep=lambda s: None)
    import twofa.core.otp_core as otp_core
    import twofa.core.otp_cli as otp_cli
    monkeypatch.setattr(otp_core, "time", fake)
    monkeypatch.setattr(otp_cli, "time", fake)
    return fake
