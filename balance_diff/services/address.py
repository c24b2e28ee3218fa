"""Helpers for validating wallet addresses per chain family."""

from __future__ import annotations

import base64
import binascii
import re
from functools import lru_cache
from typing import Iterable, List

from eth_utils import is_address

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {char: index for index, char in enumerate(_BASE58_ALPHABET)}

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_TON_RAW_RE = re.compile(r"^(-?\d{1,3}):([a-fA-F0-9]{64})$")
_TON_FRIENDLY_RE = re.compile(r"^[A-Za-z0-9_\-+/]{48}$")

# bounceable / non-bounceable, each optionally with the testnet bit set
_TON_TAGS = {0x11, 0x51, 0x91, 0xD1}


def base58_decode(value: str) -> bytes:
    if not value:
        return b""
    num = 0
    for char in value:
        if char not in _BASE58_INDEX:
            raise ValueError("Invalid base58 character")
        num = num * 58 + _BASE58_INDEX[char]
    combined = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    pad = len(value) - len(value.lstrip("1"))
    return b"\x00" * pad + combined


def is_valid_evm_address(address: str) -> bool:
    """0x-prefixed 20-byte hex; mixed case must carry a valid EIP-55 checksum."""
    if not isinstance(address, str) or not _EVM_ADDRESS_RE.fullmatch(address):
        return False
    return bool(is_address(address))


@lru_cache(maxsize=128)
def is_valid_solana_address(address: str) -> bool:
    if not address or not 32 <= len(address) <= 44:
        return False
    try:
        return len(base58_decode(address)) == 32
    except ValueError:
        return False


def _decode_ton_friendly(address: str) -> bytes:
    normalized = address.replace("-", "+").replace("_", "/")
    return base64.b64decode(normalized, validate=True)


def is_valid_ton_address(address: str) -> bool:
    """Raw ``<workchain>:<hex>`` or 48-char user-friendly form with CRC16."""
    if not isinstance(address, str) or not address:
        return False

    raw = _TON_RAW_RE.fullmatch(address)
    if raw:
        return -128 <= int(raw.group(1)) <= 127

    if not _TON_FRIENDLY_RE.fullmatch(address):
        return False
    try:
        data = _decode_ton_friendly(address)
    except (ValueError, binascii.Error):
        return False
    if len(data) != 36 or data[0] not in _TON_TAGS or data[1] not in (0x00, 0xFF):
        return False
    return binascii.crc_hqx(data[:34], 0) == int.from_bytes(data[34:], "big")


def split_addresses(values: Iterable[str]) -> List[str]:
    """Trim entries, dropping blanks and ``#`` comments."""
    addresses = []
    for value in values:
        candidate = value.strip()
        if candidate and not candidate.startswith("#"):
            addresses.append(candidate)
    return addresses


__all__ = [
    "base58_decode",
    "is_valid_evm_address",
    "is_valid_solana_address",
    "is_valid_ton_address",
    "split_addresses",
]
