"""Wallet address validation and normalization utilities."""

from __future__ import annotations

from eth_utils import is_hex_address, to_checksum_address

from backend_arcscore.core.exceptions import InvalidWalletAddress


def is_valid_wallet(w: str) -> bool:
    """Return True if w is a 20-byte hex address (any letter case, checksum not enforced)."""
    return is_hex_address((w or "").strip())


def normalize_address(w: str) -> str:
    """Lowercased storage key for an address. Raises InvalidWalletAddress if malformed."""
    w = (w or "").strip()
    if not is_hex_address(w):
        raise InvalidWalletAddress(w)
    w = w.lower()
    return w if w.startswith("0x") else "0x" + w


def checksum_or_none(w: str) -> str | None:
    """EIP-55 checksummed form, or None when w cannot be normalized."""
    try:
        return to_checksum_address((w or "").strip())
    except (ValueError, TypeError):
        return None
