def nft_contracts_htable_key(namespace: str, chain_id: int) -> str:
    """Hash of contract address -> ContractDocument JSON."""
    return f'nftContracts:{namespace}:{chain_id}'


def nft_contracts_updates_channel(namespace: str, chain_id: int) -> str:
    """Pub/sub channel carrying every upserted ContractDocument."""
    return f'nftContracts:{namespace}:{chain_id}:updates'
