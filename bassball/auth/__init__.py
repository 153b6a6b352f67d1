"""Wallet authentication (Sign-In with Ethereum)."""

from bassball.auth.siwe import (
    SiweMessage,
    SiweSession,
    SiweSessionStore,
    SiweVerification,
    format_siwe_message,
    generate_nonce,
    generate_siwe_message,
    parse_siwe_message,
    verify_siwe_message,
)

__all__ = [
    "SiweMessage",
    "SiweSession",
    "SiweSessionStore",
    "SiweVerification",
    "format_siwe_message",
    "generate_nonce",
    "generate_siwe_message",
    "parse_siwe_message",
    "verify_siwe_message",
]
