#!/usr/bin/env python3
"""
otp_core.py - Core library for TOTP codes and otpauth:// URIs.

Goals:
- Pure functions only, used directly by the CLI, the interactive UI and the tests.
- No argparse, no printing, no logging, no file I/O here - callers decide how
  failures are shown to the user.
- Every function takes the current time as an explicit ``timestamp`` argument
  (default: now) so results can be reproduced exactly.

Algorithms:
- Base32 (RFC 4648), lenient: characters outside A-Z / 2-7 are skipped.
- HOTP building block (RFC 4226): HMAC-SHA1 over an 8-byte big-endian counter,
  then dynamic truncation.
- TOTP (RFC 6238): counter = floor(unix_time / period).

Security note:
- SHA-1 is the only supported HMAC hash; URIs asking for another algorithm are
  rejected instead of silently producing codes nobody else would accept.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple, Union
import hashlib
import hmac
import math
import re
import struct
import time
import urllib.parse

from twofa.config import DEFAULT_DIGITS, DEFAULT_TIME_STEP, MIN_RAW_SECRET_LENGTH

# --- Config / constants ----------------------------------------------------
BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
OTPAUTH_SCHEME = "otpauth"
OTPAUTH_TYPE = "totp"
SUPPORTED_ALGORITHM = "SHA1"

_BASE32_VALUES = {ch: i for i, ch in enumerate(BASE32_ALPHABET)}
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_MAX_COUNTER = 2 ** 64 - 1  # 8-byte moving factor

Timestamp = Union[None, int, float, datetime]


# --- Errors ----------------------------------------------------------------
class OTPError(ValueError):
    """Base class for every failure raised by the core."""


class InvalidSecret(OTPError):
    """The base32 secret decodes to zero bytes."""


class InvalidPeriod(OTPError):
    """The time step is not a positive integer."""


class InvalidDigits(OTPError):
    """The code length is not a positive integer."""


class MalformedUri(OTPError):
    """An otpauth:// URI could not be turned into a credential."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid otpauth:// URI ({reason})")


# --- Shared types ----------------------------------------------------------
@dataclass(frozen=True)
class ParsedCredential:
    """Everything needed to create an account record and to generate codes."""

    issuer: str
    account: str
    secret: str
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_TIME_STEP

    def as_record(self) -> dict:
        # id / createdAt are assigned by storage
        return {
            "issuer": self.issuer,
            "account": self.account,
            "secret": self.secret,
            "digits": self.digits,
            "period": self.period,
        }


# --- Base32 ----------------------------------------------------------------
def normalize_secret(value: str) -> str:
    """
    Uppercase a secret and drop whitespace and trailing ``=`` padding.

    Example: normalize_secret("jbsw y3dp ehpk 3pxp==") -> "JBSWY3DPEHPK3PXP"
    """
    cleaned = "".join(value.split()).upper()
    return cleaned.rstrip("=")


def base32_decode(value: str) -> bytes:
    """
    Decode an RFC 4648 base32 string into raw key bytes.

    Steps:
    1. Normalize (uppercase, strip whitespace, strip trailing '=')
    2. For every alphabet symbol push its 5 bits into a buffer; other
       characters are skipped (lenient decoding of QR / copy-paste noise)
    3. Each time 8 or more bits are buffered, emit the top 8 as one byte
    4. Leftover bits (< 8) are dropped

    Returns:
        bytes of length floor(5 * valid_symbols / 8); may be empty, callers
        that need a key must treat empty output as an invalid secret.
    """
    out = bytearray()
    buffer = 0
    bits = 0
    for ch in normalize_secret(value):
        idx = _BASE32_VALUES.get(ch)
        if idx is None:
            continue
        buffer = ((buffer << 5) | idx) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
    return bytes(out)


def is_valid_base32(value: str, min_length: int = MIN_RAW_SECRET_LENGTH) -> bool:
    """
    Strict check used to recognise a raw secret key typed or pasted by the user.

    True when the normalized text is made only of base32 symbols and has at
    least ``min_length`` of them.
    """
    cleaned = normalize_secret(value)
    if len(cleaned) < min_length:
        return False
    return all(ch in _BASE32_VALUES for ch in cleaned)


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Encode the moving factor as an 8-byte big-endian unsigned integer (RFC 4226).

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    RFC 4226 dynamic truncation.

    - offset = low nibble of the last byte
    - take 4 bytes from offset, clear the top bit of the first one
    - return the resulting 31-bit unsigned integer
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def _code_for_counter(key: bytes, counter: int, digits: int) -> str:
    digest = hmac.new(key, int_to_bytes(counter), hashlib.sha1).digest()
    value = dynamic_truncate(digest) % (10 ** digits)
    # fixed width: 7123 -> "007123"
    return str(value).zfill(digits)


def _seconds(timestamp: Timestamp) -> int:
    """Whole seconds since the Unix epoch for ``timestamp`` (None -> now)."""
    if timestamp is None:
        return int(time.time())
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return math.floor(timestamp.timestamp())
    return math.floor(timestamp)


def check_period(period: int) -> None:
    if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
        raise InvalidPeriod(f"period must be a positive integer, got {period!r}")


def check_digits(digits: int) -> None:
    if isinstance(digits, bool) or not isinstance(digits, int) or digits <= 0:
        raise InvalidDigits(f"digits must be a positive integer, got {digits!r}")


# --- TOTP ------------------------------------------------------------------
def generate_totp(
    secret_b32: str,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
    timestamp: Timestamp = None,
) -> str:
    """
    Compute the TOTP code (RFC 6238, HMAC-SHA1) for ``timestamp``.

    Arguments:
        secret_b32: base32 secret (case-insensitive, padding/whitespace allowed)
        digits: length of the code, zero-padded
        period: time step in seconds
        timestamp: None (now), epoch seconds (int/float) or a datetime
            (naive datetimes are read as UTC)

    Returns:
        str: exactly ``digits`` decimal characters

    Raises:
        InvalidSecret: the secret decodes to zero bytes
        InvalidPeriod: period is not a positive integer
        InvalidDigits: digits is not a positive integer
        OTPError: timestamp is before the Unix epoch, or its counter does
            not fit in 8 bytes
    """
    key = base32_decode(secret_b32)
    if not key:
        raise InvalidSecret("secret does not contain any base32 characters")
    check_period(period)
    check_digits(digits)

    counter = _seconds(timestamp) // period
    if counter < 0:
        raise OTPError("timestamp is before the Unix epoch")
    if counter > _MAX_COUNTER:
        raise OTPError("timestamp is too far in the future")
    return _code_for_counter(key, counter, digits)


def seconds_until_next_step(period: int = DEFAULT_TIME_STEP, timestamp: Timestamp = None) -> int:
    """
    Seconds left before the code for ``period`` changes, in [1, period].

    Raises:
        InvalidPeriod: period is not a positive integer
    """
    check_period(period)
    return period - (_seconds(timestamp) % period)


def totp(
    secret_b32: str,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
    timestamp: Timestamp = None,
) -> Tuple[str, int]:
    """
    Code and remaining seconds computed from a single clock sample.

    Display loops use this so the countdown and the code never disagree
    around a step boundary.

    Returns:
        (code, remaining_seconds)
    """
    now = _seconds(timestamp)
    code = generate_totp(secret_b32, digits, period, now)
    return code, seconds_until_next_step(period, now)


def format_code(code: str, group: int = 3) -> str:
    """Group a code for humans: "123456" -> "123 456"."""
    return " ".join(code[i:i + group] for i in range(0, len(code), group))


# --- otpauth:// URIs -------------------------------------------------------
def _lenient_int(raw: Optional[str], default: int) -> int:
    """Leading integer of ``raw`` ("8", "08", "8x" -> 8); default when missing or < 1."""
    if raw is None:
        return default
    m = _LEADING_INT.match(raw)
    if not m:
        return default
    value = int(m.group(1))
    return value if value > 0 else default


def read_otpauth_uri(uri: str) -> ParsedCredential:
    """
    Parse ``otpauth://totp/<label>?secret=...&issuer=...&digits=...&period=...``.

    Label rules:
    - "Issuer:account" -> the part before the first ':' is the issuer (used
      only when the issuer parameter is missing), the rest is the account;
      further colons stay in the account
    - no ':' -> the whole label is the account

    digits / period are parsed leniently and fall back to 6 / 30.

    Raises:
        MalformedUri: not a URI, scheme is not otpauth, type is not totp,
            secret is missing, or algorithm is not SHA1
    """
    if not isinstance(uri, str):
        raise MalformedUri("not a string")
    try:
        parts = urllib.parse.urlsplit(uri.strip())
    except ValueError as e:
        raise MalformedUri("unparseable") from e

    if parts.scheme != OTPAUTH_SCHEME:
        raise MalformedUri(f"scheme must be {OTPAUTH_SCHEME!r}")
    if parts.netloc != OTPAUTH_TYPE:
        raise MalformedUri(f"type must be {OTPAUTH_TYPE!r}")

    params = urllib.parse.parse_qs(parts.query)
    secret = params.get("secret", [""])[0]
    if not secret:
        raise MalformedUri("missing secret")

    algorithm = params.get("algorithm", [SUPPORTED_ALGORITHM])[0]
    if algorithm.upper() != SUPPORTED_ALGORITHM:
        raise MalformedUri(f"unsupported algorithm {algorithm!r}")

    label = urllib.parse.unquote(parts.path[1:])
    issuer = params.get("issuer", [""])[0]
    account = label
    if ":" in label:
        label_issuer, account = label.split(":", 1)
        if not issuer:
            issuer = label_issuer

    return ParsedCredential(
        issuer=issuer,
        account=account,
        secret=secret,
        digits=_lenient_int(params.get("digits", [None])[0], DEFAULT_DIGITS),
        period=_lenient_int(params.get("period", [None])[0], DEFAULT_TIME_STEP),
    )


def parse_otpauth_uri(uri: str) -> Optional[ParsedCredential]:
    """Like read_otpauth_uri but returns None instead of raising."""
    try:
        return read_otpauth_uri(uri)
    except MalformedUri:
        return None


def format_otpauth_uri(
    secret_b32: str,
    account: str,
    issuer: str = "",
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
) -> str:
    """
    Build the otpauth://totp URI for a credential, e.g. to render it as a QR code.

    - label: "issuer:account" (or just "account" when issuer is empty), percent-encoded
    - an account containing ':' without an issuer gets an empty issuer prefix
      (":alice:admin") so it reads back unchanged
    - params: secret, issuer (if any), algorithm=SHA1, digits, period
    """
    label = f"{issuer}:{account}" if issuer or ":" in account else account
    query = {"secret": normalize_secret(secret_b32)}
    if issuer:
        query["issuer"] = issuer
    query.update({"algorithm": SUPPORTED_ALGORITHM, "digits": digits, "period": period})
    return (
        f"{OTPAUTH_SCHEME}://{OTPAUTH_TYPE}/{urllib.parse.quote(label, safe='@:')}"
        f"?{urllib.parse.urlencode(query, quote_via=urllib.parse.quote)}"
    )
