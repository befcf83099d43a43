"""
onboarding.py - Turn what the user pasted, typed or screenshotted into a credential.

Accepted inputs, tried in this order for the clipboard:
1. otpauth://totp/... URI (text)
2. raw base32 secret key (text, needs a name)
3. QR code image containing an otpauth URI
"""

import logging
from pathlib import Path
from typing import Optional, Union

from twofa.config import DEFAULT_DIGITS, DEFAULT_ISSUER, DEFAULT_TIME_STEP
from twofa.core import clipboard, qr_reader
from twofa.core.otp_core import (
    InvalidSecret,
    MalformedUri,
    OTPError,
    ParsedCredential,
    base32_decode,
    check_digits,
    check_period,
    is_valid_base32,
    normalize_secret,
    read_otpauth_uri,
)
from twofa.database import db_manager

logger = logging.getLogger(__name__)

URI_PREFIX = "otpauth://"


class OnboardingError(OTPError):
    """The input is neither a usable URI, a raw key nor a readable QR code."""


class MissingName(OnboardingError):
    """A raw secret key was given without an account name."""


def looks_like_uri(text: str) -> bool:
    return text.lower().startswith(URI_PREFIX)


def ensure_decodable(cred: ParsedCredential) -> ParsedCredential:
    """
    Refuse credentials that could never produce a code.

    Raises:
        InvalidSecret: the secret would hash with an empty key
        InvalidDigits / InvalidPeriod: not a positive integer
    """
    if not base32_decode(cred.secret):
        raise InvalidSecret("secret does not contain any base32 characters")
    check_digits(cred.digits)
    check_period(cred.period)
    return cred


def credential_from_uri(uri: str) -> ParsedCredential:
    cred = read_otpauth_uri(uri)
    if not cred.issuer:
        cred = ParsedCredential(DEFAULT_ISSUER, cred.account, cred.secret, cred.digits, cred.period)
    return ensure_decodable(cred)


def credential_from_text(
    text: str,
    name: Optional[str] = None,
    issuer: str = "",
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
) -> ParsedCredential:
    """
    Credential from a URI or a raw key.

    Raises:
        MalformedUri: text looks like a URI but cannot be parsed
        OnboardingError: raw key without a name, or not a key at all
        InvalidSecret: the key decodes to nothing
        InvalidDigits / InvalidPeriod: digits or period is not positive
    """
    text = text.strip()
    if looks_like_uri(text):
        return credential_from_uri(text)

    if not is_valid_base32(text):
        raise OnboardingError("Invalid secret key (must be base32 encoded, at least 16 characters)")
    if not name:
        raise MissingName("Name required for raw secret key (use -n <name>)")
    return ensure_decodable(ParsedCredential(
        issuer=issuer,
        account=name,
        secret=normalize_secret(text),
        digits=digits,
        period=period,
    ))


def credential_from_image(path: Union[str, Path]) -> ParsedCredential:
    data = qr_reader.decode_path(path)
    if not data:
        raise OnboardingError(f"No QR code found in {path}")
    if not looks_like_uri(data):
        raise OnboardingError("Invalid QR code - not a valid authenticator URL")
    return credential_from_uri(data)


def credential_from_clipboard(name: Optional[str] = None) -> ParsedCredential:
    """Clipboard text (URI or key) first, then a QR code image on the clipboard."""
    text = clipboard.read_text()
    if text:
        if looks_like_uri(text):
            try:
                return credential_from_uri(text)
            except MalformedUri as e:
                logger.debug("Clipboard text is not a usable URI: %s", e)
        elif is_valid_base32(text):
            return credential_from_text(text, name=name)
        logger.debug("Clipboard text is neither a URI nor a key; trying image")

    data = qr_reader.read_from_clipboard()
    if not data:
        raise OnboardingError("No valid data found in clipboard (QR, URI, or secret key)")
    if not looks_like_uri(data):
        raise OnboardingError("Invalid QR code - not a valid authenticator URL")
    return credential_from_uri(data)


def store(cred: ParsedCredential) -> dict:
    """Persist a credential and return the stored record."""
    return db_manager.add_account(**cred.as_record())
