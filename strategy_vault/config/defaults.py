"""Default configuration parameters for the strategy vault."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AccessParams:
    """Purchase and access-grant parameters."""
    executor_address: str = ""                       # Executor identity granted access on purchase
    max_access_count: Optional[int] = None           # None = unlimited executions per purchase


@dataclass(frozen=True)
class NetworkParams:
    """Network the executor trades on."""
    chain_id: int = 8453                             # Base mainnet
    rpc_url: str = "https://mainnet.base.org"
    contracts: dict = field(default_factory=dict)    # Protocol name -> contract address


@dataclass(frozen=True)
class ExecutionParams:
    """Remote execution parameters."""
    executor_address: str = ""                       # Must match AccessParams.executor_address
    execution_timeout: int = 300                     # Seconds, forwarded to the executor
    max_gas_price: Optional[str] = None              # Wei; None = network default

    # Simulated executor lifecycle thresholds
    pending_seconds: float = 10.0
    running_seconds: float = 30.0

    # HTTP executor transport
    executor_url: Optional[str] = None
    http_timeout_seconds: int = 30

    network: NetworkParams = field(default_factory=NetworkParams)


@dataclass(frozen=True)
class StoreParams:
    """Ownership store parameters."""
    db_path: str = "ownership.db"


@dataclass(frozen=True)
class ProtectorParams:
    """Local data protector parameters."""
    encryption_key: Optional[str] = None             # Base64 32-byte AES key; required for a file store


@dataclass(frozen=True)
class VaultConfig:
    """Complete configuration."""
    access: AccessParams
    execution: ExecutionParams
    store: StoreParams
    protector: ProtectorParams


def get_default_config() -> VaultConfig:
    """Get the default configuration instance."""
    return VaultConfig(
        access=AccessParams(),
        execution=ExecutionParams(),
        store=StoreParams(),
        protector=ProtectorParams(),
    )
