from typing import Any, Dict, Iterable, List, Optional
from eth_abi.codec import ABICodec
from eth_abi.exceptions import DecodingError
from eth_abi.registry import registry as default_abi_registry
from eth_utils.abi import event_signature_to_log_topic
from utils.address import address_from_topic, normalize_address
from utils.exceptions import InvalidAddressError, MalformedEventError
from utils.models.data_models import ContractCreatedEvent, DiscoveryStats, LogRecord
from utils.registry import AddressRegistry
from utils.logging import logger

NFT_CONTRACT_CREATED_SIGNATURE = 'NFTContractCreated(uint256,address,address,string,string,string)'
NFT_CONTRACT_CREATED_TOPIC = '0x' + event_signature_to_log_topic(NFT_CONTRACT_CREATED_SIGNATURE).hex()

# Non-indexed payload: collectionId, name, symbol, baseURI
_PAYLOAD_TYPES = ['uint256', 'string', 'string', 'string']


def get_event_signatures() -> List[str]:
    """Topic0 hashes of the factory events this service listens for."""
    return [NFT_CONTRACT_CREATED_TOPIC]


class ContractDiscovery:
    """Grows the registry from the factory's NFTContractCreated events.

    Parsing is pure computation plus one registry insert per event; it never
    touches the network or disk.
    """

    def __init__(self, registry: AddressRegistry, factory_address: Optional[str] = None):
        self._logger = logger.bind(module='ContractDiscovery')
        self.registry = registry
        self.factory_address = normalize_address(factory_address or registry.factory_address)
        self.codec = ABICodec(default_abi_registry)
        self.stats = DiscoveryStats()
        self.last_events: List[ContractCreatedEvent] = []

    def _is_applicable(self, log: LogRecord) -> bool:
        if log.address.lower() != self.factory_address:
            return False
        return bool(log.topics) and log.topics[0].lower() == NFT_CONTRACT_CREATED_TOPIC

    def _decode_payload(self, log: LogRecord) -> Dict[str, Any]:
        data_hex = log.data[2:] if log.data.lower().startswith('0x') else log.data
        if not data_hex:
            return {}
        try:
            collection_id, name, symbol, base_uri = self.codec.decode(_PAYLOAD_TYPES, bytes.fromhex(data_hex))
        except (DecodingError, ValueError) as e:
            self._logger.debug(
                f"Undecodable NFTContractCreated payload in tx {log.tx_hash} (LogIndex: {log.log_index}): {e}"
            )
            return {}
        return {'collection_id': collection_id, 'name': name, 'symbol': symbol, 'base_uri': base_uri}

    def parse_one(self, log: LogRecord) -> Optional[ContractCreatedEvent]:
        """Decode one log and register the contract it announces.

        Returns None for logs that are not factory NFTContractCreated events.

        Raises:
            MalformedEventError: the log carries the signature but the indexed
                addresses are missing or not address-shaped
        """
        if not self._is_applicable(log):
            return None

        if len(log.topics) < 3:
            raise MalformedEventError(
                f"NFTContractCreated with {len(log.topics)} topics, expected 3",
                tx_hash=log.tx_hash,
                log_index=log.log_index,
            )
        try:
            contract_address = address_from_topic(log.topics[1])
            creator = address_from_topic(log.topics[2])
        except InvalidAddressError as e:
            raise MalformedEventError(str(e), tx_hash=log.tx_hash, log_index=log.log_index) from e

        event = ContractCreatedEvent(
            contract_address=contract_address,
            creator=creator,
            block_number=log.block_number,
            tx_hash=log.tx_hash,
            log_index=log.log_index,
            **self._decode_payload(log),
        )

        if self.registry.add(contract_address):
            self.stats.contracts_discovered += 1
            self._logger.success(
                f"🆕 Discovered NFT contract {contract_address} (creator {creator}, block {log.block_number})"
            )
        return event

    def parse_batch(self, logs: Iterable[LogRecord]) -> int:
        """Run discovery over a batch, returning the number of events extracted.

        A malformed log is counted in `stats.errors` and skipped.
        """
        events: List[ContractCreatedEvent] = []
        for log in logs:
            self.stats.logs_seen += 1
            try:
                event = self.parse_one(log)
            except MalformedEventError as e:
                self.stats.errors += 1
                self._logger.error(
                    f"💥 Malformed NFTContractCreated event in tx {e.tx_hash} (LogIndex: {e.log_index}): {e}"
                )
                continue
            if event is not None:
                self.stats.events_matched += 1
                events.append(event)
        self.last_events = events
        return len(events)

    def backfill(self, logs: List[LogRecord]) -> int:
        """Process a historically retrieved batch with the live pipeline."""
        self._logger.info(f"⏪ Starting backfill of NFT contracts from {len(logs)} logs")
        discovered_before = self.stats.contracts_discovered
        count = self.parse_batch(logs)
        self._logger.success(
            f"✅ Backfill complete: {count} NFTContractCreated events, "
            f"{self.stats.contracts_discovered - discovered_before} new contracts"
        )
        return count
