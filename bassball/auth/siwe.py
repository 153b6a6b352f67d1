"""Sign-In with Ethereum (EIP-4361) messages and wallet sessions.

The message text layout::

    {domain} wants you to sign in with your Ethereum account:
    {address}

    {statement}

    URI: {uri}
    Version: {version}
    Chain ID: {chain_id}
    Nonce: {nonce}
    Issued At: {issued_at}
    Expiration Time: {expiration_time}
    Not Before: {not_before}
    Request ID: {request_id}
    Resources:
    - {resource}

Signature recovery is not done here. ``verify_siwe_message`` takes a
``verifier(message, signature, address) -> bool`` callable supplied by the
caller (an eth-account or web3 binding in production, a stub in tests).
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field

from bassball.middleware.error_handler import ValidationError
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

SignatureVerifier = Callable[[str, str, str], bool]

HEADER_SUFFIX = " wants you to sign in with your Ethereum account:"

_REQUIRED_FIELDS = ("URI", "Version", "Chain ID", "Nonce", "Issued At")


class SiweMessage(BaseModel):
    domain: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    statement: str | None = None
    uri: str
    version: str = "1"
    chain_id: int = Field(..., ge=1)
    nonce: str = Field(..., min_length=8)
    issued_at: datetime
    expiration_time: datetime | None = None
    not_before: datetime | None = None
    request_id: str | None = None
    resources: list[str] = Field(default_factory=list)


class SiweVerification(BaseModel):
    is_valid: bool
    message: SiweMessage | None = None
    error: str | None = None
    signer: str | None = None


class SiweSession(BaseModel):
    address: str
    signature: str
    message: SiweMessage
    expires_at: datetime


def generate_nonce() -> str:
    """Random 16-byte nonce as 32 lowercase hex characters."""
    return secrets.token_hex(16)


def generate_siwe_message(
    address: str,
    chain_id: int,
    domain: str = "bassball.game",
    statement: str | None = "Sign in to Bass Ball",
    uri: str = "http://localhost:3000",
    expiration_hours: int = 24,
    now: datetime | None = None,
) -> SiweMessage:
    issued_at = now or utc_now()
    return SiweMessage(
        domain=domain,
        address=address,
        statement=statement,
        uri=uri,
        chain_id=chain_id,
        nonce=generate_nonce(),
        issued_at=issued_at,
        expiration_time=issued_at + timedelta(hours=expiration_hours),
    )


def _format_time(value: datetime) -> str:
    """RFC 3339 in UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _parse_time(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_siwe_message(message: SiweMessage) -> str:
    """Render *message* as the EIP-4361 text the wallet signs."""
    text = f"{message.domain}{HEADER_SUFFIX}\n{message.address}\n\n"
    if message.statement:
        text += f"{message.statement}\n\n"

    fields = [
        f"URI: {message.uri}",
        f"Version: {message.version}",
        f"Chain ID: {message.chain_id}",
        f"Nonce: {message.nonce}",
        f"Issued At: {_format_time(message.issued_at)}",
    ]
    if message.expiration_time:
        fields.append(f"Expiration Time: {_format_time(message.expiration_time)}")
    if message.not_before:
        fields.append(f"Not Before: {_format_time(message.not_before)}")
    if message.request_id:
        fields.append(f"Request ID: {message.request_id}")
    if message.resources:
        fields.append("Resources:")
        fields.extend(f"- {resource}" for resource in message.resources)

    return text + "\n".join(fields)


def parse_siwe_message(text: str) -> SiweMessage | None:
    """Parse EIP-4361 text back into a message; ``None`` when malformed."""
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    if len(lines) < 2 + len(_REQUIRED_FIELDS) or not lines[0].endswith(HEADER_SUFFIX):
        return None

    domain = lines[0][: -len(HEADER_SUFFIX)]
    address = lines[1]

    statement_lines: list[str] = []
    index = 2
    while index < len(lines) and not lines[index].startswith("URI: "):
        statement_lines.append(lines[index])
        index += 1

    fields: dict[str, str] = {}
    resources: list[str] = []
    in_resources = False
    for line in lines[index:]:
        if line == "Resources:":
            in_resources = True
        elif in_resources and line.startswith("- "):
            resources.append(line[2:])
        elif ": " in line:
            in_resources = False
            key, value = line.split(": ", 1)
            fields[key] = value
        else:
            return None

    if any(name not in fields for name in _REQUIRED_FIELDS):
        return None

    try:
        return SiweMessage(
            domain=domain,
            address=address,
            statement=" ".join(statement_lines) or None,
            uri=fields["URI"],
            version=fields["Version"],
            chain_id=int(fields["Chain ID"]),
            nonce=fields["Nonce"],
            issued_at=_parse_time(fields["Issued At"]),
            expiration_time=(
                _parse_time(fields["Expiration Time"]) if "Expiration Time" in fields else None
            ),
            not_before=_parse_time(fields["Not Before"]) if "Not Before" in fields else None,
            request_id=fields.get("Request ID"),
            resources=resources,
        )
    except ValueError:
        # pydantic's ValidationError is a ValueError too
        return None


def verify_siwe_message(
    message: str,
    signature: str,
    expected_address: str,
    verifier: SignatureVerifier,
    expected_chain_id: int | None = None,
    now: datetime | None = None,
) -> SiweVerification:
    """Check signature, format, address, chain id and validity window, in that order."""
    try:
        signature_ok = verifier(message, signature, expected_address)
    except Exception as exc:  # verifier backends raise library-specific errors
        logger.info("SIWE signature verification raised: %s", exc)
        return SiweVerification(is_valid=False, error=str(exc) or "Verification failed")
    if not signature_ok:
        return SiweVerification(is_valid=False, error="Invalid signature")

    parsed = parse_siwe_message(message)
    if parsed is None:
        return SiweVerification(is_valid=False, error="Invalid SIWE message format")

    if parsed.address.lower() != expected_address.lower():
        return SiweVerification(is_valid=False, error="Address mismatch")

    if expected_chain_id is not None and parsed.chain_id != expected_chain_id:
        return SiweVerification(is_valid=False, error="Chain ID mismatch")

    current = now or utc_now()
    if parsed.expiration_time and current > parsed.expiration_time:
        return SiweVerification(is_valid=False, error="Message expired")
    if parsed.not_before and current < parsed.not_before:
        return SiweVerification(is_valid=False, error="Message not yet valid")

    return SiweVerification(is_valid=True, message=parsed, signer=expected_address)


class SiweSessionStore:
    """Verified wallet sessions keyed by lowercase address."""

    def __init__(
        self,
        storage: StorageBackend,
        clock: Clock = utc_now,
        default_expiration_hours: int = 24,
    ) -> None:
        self._clock = clock
        self._default_ttl = timedelta(hours=default_expiration_hours)
        self._sessions = ModelStore(storage.repository("siwe_sessions"), SiweSession)

    def create_session(self, verification: SiweVerification, signature: str) -> SiweSession:
        if not verification.is_valid or verification.message is None:
            raise ValidationError(
                "Cannot create a session from a failed verification",
                error=verification.error,
            )
        message = verification.message
        session = SiweSession(
            address=message.address,
            signature=signature,
            message=message,
            expires_at=message.expiration_time or self._clock() + self._default_ttl,
        )
        self._sessions.put(message.address.lower(), session)
        logger.info(
            "SIWE session created for %s",
            message.address,
            extra={"event": "siwe_session_created", "entity_id": message.address.lower()},
        )
        return session

    def get_session(self, address: str) -> SiweSession | None:
        key = address.lower()
        session = self._sessions.get(key)
        if session is not None and session.expires_at <= self._clock():
            self._sessions.delete(key)
            return None
        return session

    def is_authenticated(self, address: str) -> bool:
        return self.get_session(address) is not None

    def sign_out(self, address: str) -> bool:
        return self._sessions.delete(address.lower())
