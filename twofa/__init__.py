"""
twofa package
=============

Local TOTP authenticator (RFC 6238): keeps named secrets in a JSON file and
prints the current codes, compatible with Google Authenticator and friends.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- Base32 (RFC 4648): the secret is stored as text, decoded to key bytes.
- TOTP: counter = floor(unix_time / period), 8-byte big-endian.
  code = Truncate(HMAC-SHA1(key, counter)) mod 10^digits, zero-padded.
- Dynamic truncation (RFC 4226): offset = last byte & 0x0F, take 4 bytes
  from offset, clear the top bit, read as a big-endian integer.

──────────────────────────────────────────────
Layout
──────────────────────────────────────────────
- twofa.core.otp_core   pure functions: base32, codes, otpauth URIs
- twofa.core.onboarding URI / key / QR / clipboard -> credential
- twofa.core.otp_cli    the `2fa` command
- twofa.core.tui        interactive UI
- twofa.database        JSON account store

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from twofa import generate_totp, parse_otpauth_uri
>>> cred = parse_otpauth_uri(
...     "otpauth://totp/Example:alice?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ&digits=8")
>>> generate_totp(cred.secret, cred.digits, cred.period, timestamp=59)
'94287082'
"""

__version__ = "0.1.0"

from twofa.core.otp_core import (  # noqa: E402
    InvalidDigits,
    InvalidPeriod,
    InvalidSecret,
    MalformedUri,
    OTPError,
    ParsedCredential,
    base32_decode,
    format_code,
    format_otpauth_uri,
    generate_totp,
    parse_otpauth_uri,
    read_otpauth_uri,
    seconds_until_next_step,
    totp,
)
