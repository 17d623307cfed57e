import pytest

from scripts.backfill import iter_ranges
from tests.conftest import NFT_A
from utils.address import address_from_topic, normalize_address, normalize_addresses, pad_address_topic
from utils.exceptions import InvalidAddressError

CHECKSUMMED = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


def test_normalize_lowercases() -> None:
    assert normalize_address(CHECKSUMMED) == CHECKSUMMED.lower()


def test_normalize_ignores_checksum_of_mixed_case() -> None:
    assert normalize_address("0x" + "aA" * 20) == NFT_A
    assert normalize_address(CHECKSUMMED.swapcase().replace("0X", "0x")) == CHECKSUMMED.lower()


@pytest.mark.parametrize("value", ["", "0x1234", "0x" + "g" * 40, None, 42])
def test_normalize_rejects_bad_input(value) -> None:
    with pytest.raises(InvalidAddressError):
        normalize_address(value)


def test_normalize_addresses_keeps_first_seen_order() -> None:
    assert normalize_addresses([NFT_A, CHECKSUMMED, CHECKSUMMED.lower()]) == [NFT_A, CHECKSUMMED.lower()]


def test_topic_round_trip() -> None:
    topic = pad_address_topic(CHECKSUMMED)
    assert len(topic) == 66
    assert address_from_topic(topic) == CHECKSUMMED.lower()


@pytest.mark.parametrize("topic", ["0x1234", "0x" + "01" * 32, "0x" + "zz" * 32])
def test_topic_that_is_not_an_address(topic: str) -> None:
    with pytest.raises(InvalidAddressError):
        address_from_topic(topic)


def test_iter_ranges() -> None:
    assert list(iter_ranges(0, 4_500, 2_000)) == [(0, 1_999), (2_000, 3_999), (4_000, 4_500)]
    assert list(iter_ranges(10, 10, 100)) == [(10, 10)]
    assert list(iter_ranges(11, 10, 100)) == []
