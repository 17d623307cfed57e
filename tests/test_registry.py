from concurrent.futures import ThreadPoolExecutor

import pytest

from tests.conftest import FACTORY, NFT_A, NFT_B, OTHER, PAYMENT
from utils.exceptions import ConfigurationError, InvalidAddressError
from utils.registry import AddressRegistry

CHECKSUMMED = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


def test_fixed_roles_watched_with_empty_dynamic_set(registry: AddressRegistry) -> None:
    assert registry.contains(FACTORY)
    assert registry.contains(PAYMENT)
    assert registry.dynamic_count() == 0
    assert not registry.contains(NFT_A)


def test_add_is_idempotent(registry: AddressRegistry) -> None:
    assert registry.add(NFT_A) is True
    assert registry.add(NFT_A) is False

    assert registry.contains(NFT_A)
    assert registry.dynamic_count() == 1


def test_case_differences_do_not_create_duplicates(registry: AddressRegistry) -> None:
    registry.add(CHECKSUMMED)
    assert registry.add(CHECKSUMMED.lower()) is False
    assert registry.dynamic_count() == 1
    assert CHECKSUMMED.lower() in registry.get_address_filter()


def test_mixed_case_spelling_matches_watched_address(registry: AddressRegistry) -> None:
    mixed = "0x" + "aA" * 20
    registry.add(NFT_A)

    assert registry.contains(mixed)
    assert registry.add(mixed) is False
    assert registry.add_batch([mixed, "0x" + "Bb" * 20]) == 1
    assert registry.contains(NFT_B)
    assert registry.dynamic_count() == 2


def test_add_batch_counts_only_new_members(registry: AddressRegistry) -> None:
    assert registry.add_batch([NFT_A, NFT_B, NFT_A]) == 2
    assert registry.add_batch([NFT_B]) == 0
    assert registry.dynamic_count() == 2


def test_add_batch_skips_malformed_entries(registry: AddressRegistry) -> None:
    assert registry.add_batch([NFT_A, "0x1234", "not-an-address", NFT_B]) == 2
    assert registry.snapshot() == {FACTORY, PAYMENT, NFT_A, NFT_B}


def test_add_rejects_malformed_address(registry: AddressRegistry) -> None:
    with pytest.raises(InvalidAddressError):
        registry.add("0xnothex")


def test_dynamic_count_never_decreases(registry: AddressRegistry) -> None:
    counts = []
    for batch in ([NFT_A], [NFT_A, NFT_B], [], [NFT_B, OTHER], [OTHER]):
        registry.add_batch(batch)
        counts.append(registry.dynamic_count())
    assert counts == sorted(counts)
    assert counts[-1] == 3


def test_disabled_filter_contains_everything() -> None:
    registry = AddressRegistry(FACTORY, PAYMENT, enabled=False)
    assert registry.contains(OTHER)
    assert registry.contains("garbage")


def test_unknown_or_malformed_address_not_contained(registry: AddressRegistry) -> None:
    assert not registry.contains(OTHER)
    assert not registry.contains("0x12")


def test_preloaded_contracts_are_watched() -> None:
    registry = AddressRegistry(FACTORY, PAYMENT, nft_contracts=[NFT_A, NFT_A.upper().replace("0X", "0x")])
    assert registry.contains(NFT_A)
    assert registry.dynamic_count() == 1


def test_address_filter_is_sorted_and_includes_fixed_roles(registry: AddressRegistry) -> None:
    registry.add_batch([OTHER, NFT_B, NFT_A])
    first = registry.get_address_filter()
    assert first == sorted([FACTORY, PAYMENT, NFT_A, NFT_B, OTHER])

    other = AddressRegistry(FACTORY, PAYMENT, nft_contracts=[NFT_A, NFT_B, OTHER])
    assert other.get_address_filter() == first


def test_stats(registry: AddressRegistry) -> None:
    registry.add(NFT_A)
    stats = registry.stats()
    assert stats.enabled is True
    assert stats.factory_address == FACTORY
    assert stats.payment_address == PAYMENT
    assert stats.dynamic_count == 1
    assert stats.total_watched == 3


@pytest.mark.parametrize("factory,payment", [("", PAYMENT), (FACTORY, "0x123"), ("nope", "nope")])
def test_bad_fixed_address_is_a_configuration_error(factory: str, payment: str) -> None:
    with pytest.raises(ConfigurationError):
        AddressRegistry(factory, payment)


def test_concurrent_inserts_are_not_lost(registry: AddressRegistry) -> None:
    def insert(worker: int) -> None:
        for i in range(200):
            registry.add("0x%040x" % (worker * 1_000 + i + 1))
            registry.contains(FACTORY)
            registry.snapshot()

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(insert, range(8)))

    assert registry.dynamic_count() == 8 * 200
