"""
Raffle Configuration
All configurable parameters for the raffle, the randomness oracle and the keeper
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

# Amounts are integers in wei (1 ETH = 10**18 wei)
WEI_PER_ETH = 10**18

# Raffle settings
RAFFLE_ENTRANCE_FEE = int(os.getenv("RAFFLE_ENTRANCE_FEE", str(10**16)))  # 0.01 ETH
RAFFLE_INTERVAL = int(os.getenv("RAFFLE_INTERVAL", "30"))  # seconds

# Randomness oracle (VRF) request parameters
VRF_CALLBACK_GAS_LIMIT = int(os.getenv("VRF_CALLBACK_GAS_LIMIT", "500000"))
VRF_REQUEST_CONFIRMATIONS = int(os.getenv("VRF_REQUEST_CONFIRMATIONS", "3"))
VRF_NUM_WORDS = 1  # One word is enough to pick a single winner
VRF_GAS_LANE = os.getenv(
    "VRF_GAS_LANE", "0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c"
)
VRF_SUBSCRIPTION_ID = int(os.getenv("VRF_SUBSCRIPTION_ID", "0"))

# Mock coordinator pricing
VRF_BASE_FEE = int(0.25 * WEI_PER_ETH)  # oracle premium per request (0.25 LINK)
VRF_GAS_PRICE_LINK = 10**9  # LINK per gas, derived from the gas price of the chain
VRF_SUB_FUND_AMOUNT = int(os.getenv("VRF_SUB_FUND_AMOUNT", str(30 * WEI_PER_ETH)))

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://")
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Keeper
KEEPER_POLL_SECONDS = float(os.getenv("KEEPER_POLL_SECONDS", "5"))

# Network selection
NETWORK = os.getenv("NETWORK", "hardhat").lower()
DEVELOPMENT_CHAINS = ("hardhat", "localhost")


@dataclass
class NetworkConfig:
    """Deployment parameters for a single chain"""
    name: str
    entrance_fee: int = RAFFLE_ENTRANCE_FEE
    interval: int = RAFFLE_INTERVAL
    gas_lane: str = VRF_GAS_LANE
    callback_gas_limit: int = VRF_CALLBACK_GAS_LIMIT
    vrf_coordinator: Optional[str] = None
    subscription_id: Optional[int] = None

    def __post_init__(self):
        """Validate configuration"""
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.entrance_fee < 0:
            raise ValueError("entrance_fee cannot be negative")
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.callback_gas_limit <= 0:
            raise ValueError("callback_gas_limit must be positive")

    @property
    def is_development(self):
        return self.name in DEVELOPMENT_CHAINS


NETWORK_CONFIG: Dict[int, NetworkConfig] = {
    31337: NetworkConfig(name="hardhat"),
    1337: NetworkConfig(name="localhost"),
    11155111: NetworkConfig(
        name="sepolia",
        gas_lane="0x787d74caea10b2b357790d5b5247c2f63d1d91572a9846f780606e4d953677ae",
        vrf_coordinator="0x8103B0A8A00be2DDC778e6e7eaa21791Cd364625",
        subscription_id=VRF_SUBSCRIPTION_ID,
    ),
}


def get_network_config(name):
    """
    Look up a network configuration by name

    Args:
        name: Network name (e.g. 'hardhat', 'sepolia')

    Returns:
        tuple: (chain_id, NetworkConfig)

    Raises:
        LookupError: If the network is unknown
    """
    for chain_id, network_config in NETWORK_CONFIG.items():
        if network_config.name == name.lower():
            return chain_id, network_config
    raise LookupError(f"Unknown network: {name}")


@dataclass(frozen=True)
class RaffleConfig:
    """Immutable construction parameters of a raffle"""
    entrance_fee: int = RAFFLE_ENTRANCE_FEE
    interval: int = RAFFLE_INTERVAL
    gas_lane: str = VRF_GAS_LANE
    subscription_id: int = VRF_SUBSCRIPTION_ID
    callback_gas_limit: int = VRF_CALLBACK_GAS_LIMIT
    request_confirmations: int = VRF_REQUEST_CONFIRMATIONS
    num_words: int = field(default=VRF_NUM_WORDS)

    def __post_init__(self):
        if self.entrance_fee < 0:
            raise ValueError("entrance_fee cannot be negative")
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.callback_gas_limit <= 0:
            raise ValueError("callback_gas_limit must be positive")
        if self.request_confirmations < 0:
            raise ValueError("request_confirmations cannot be negative")
        if self.num_words != 1:
            raise ValueError("num_words must be 1 (one winner per cycle)")

    @classmethod
    def from_env(cls):
        """Build a config from the module-level environment settings"""
        return cls()

    @classmethod
    def from_network(cls, network_config, subscription_id=None):
        """Build a config from a NetworkConfig entry"""
        if subscription_id is None:
            subscription_id = network_config.subscription_id or 0
        return cls(
            entrance_fee=network_config.entrance_fee,
            interval=network_config.interval,
            gas_lane=network_config.gas_lane,
            subscription_id=subscription_id,
            callback_gas_limit=network_config.callback_gas_limit,
        )
