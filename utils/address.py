"""Address canonicalization helpers.

Every address that enters the registry, the allow-list or the contract store
goes through `normalize_address`, so that checksum and lowercase spellings of
the same account never become two entries.
"""

import string
from typing import Iterable, List

from eth_utils import is_hex_address, to_normalized_address

from utils.exceptions import InvalidAddressError

ADDRESS_HEX_LENGTH = 40
TOPIC_HEX_LENGTH = 64


def normalize_address(value: str) -> str:
    """Return the lowercase 0x-prefixed form of `value`.

    Any letter case is accepted; a mixed-case spelling is not checked
    against its EIP-55 checksum.

    Raises:
        InvalidAddressError: if `value` is not a 20-byte hex address
    """
    if not isinstance(value, str) or not is_hex_address(value):
        raise InvalidAddressError(f"Not a valid address: {value!r}")
    return to_normalized_address(value)


def normalize_addresses(values: Iterable[str]) -> List[str]:
    """Normalize and deduplicate, keeping first-seen order."""
    seen = {}
    for value in values:
        seen.setdefault(normalize_address(value), None)
    return list(seen)


def address_from_topic(topic: str) -> str:
    """Reinterpret a 32-byte indexed topic word as an address.

    Indexed addresses are left-padded with 12 zero bytes; anything else in
    those bytes means the word does not hold an address.
    """
    if not isinstance(topic, str):
        raise InvalidAddressError(f"Topic is not a hex string: {topic!r}")
    body = topic[2:] if topic.lower().startswith('0x') else topic
    if len(body) != TOPIC_HEX_LENGTH:
        raise InvalidAddressError(f"Topic is not a 32-byte word: {topic!r}")
    if not all(c in string.hexdigits for c in body):
        raise InvalidAddressError(f"Topic is not hex: {topic!r}")
    padding, tail = body[:-ADDRESS_HEX_LENGTH], body[-ADDRESS_HEX_LENGTH:]
    if int(padding, 16) != 0:
        raise InvalidAddressError(f"Topic does not hold a left-padded address: {topic!r}")
    return '0x' + tail.lower()


def pad_address_topic(address: str) -> str:
    """Left-pad an address to the 32-byte topic form used for indexed params."""
    return '0x' + '0' * (TOPIC_HEX_LENGTH - ADDRESS_HEX_LENGTH) + normalize_address(address)[2:]
