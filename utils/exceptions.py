class ConfigurationError(RuntimeError):
    """Settings are missing, unreadable or invalid. Fatal at startup."""


class InvalidAddressError(ValueError):
    """Value cannot be interpreted as a 20-byte account address."""


class MalformedEventError(ValueError):
    """A log carries the discovery signature but cannot be decoded."""

    def __init__(self, message: str, tx_hash: str = '', log_index: int = -1):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.log_index = log_index


class RPCError(RuntimeError):
    """JSON-RPC call failed at the transport or node level."""


class LogFetchError(RuntimeError):
    """Log retrieval failed for a block range."""

    def __init__(self, from_block: int, to_block: int, cause: Exception):
        super().__init__(f"Failed to fetch logs for blocks {from_block}-{to_block}: {cause}")
        self.from_block = from_block
        self.to_block = to_block


class ContractSourceError(RuntimeError):
    """Authoritative contract store could not be read."""
