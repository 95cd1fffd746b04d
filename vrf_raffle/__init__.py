"""
VRF Raffle Package
Recurring raffle driven by an upkeep keeper and a verifiable randomness coordinator
"""

__version__ = "1.0.0"

# Export main components
from .config import RaffleConfig
from .deploy import deploy_raffle
from .keeper import UpkeepKeeper, setup_keeper
from .oracle import RandomnessOracle, VRFCoordinatorV2Mock
from .raffle import Raffle
from .types import RaffleState

__all__ = [
    'RaffleConfig',
    'deploy_raffle',
    'UpkeepKeeper',
    'setup_keeper',
    'RandomnessOracle',
    'VRFCoordinatorV2Mock',
    'Raffle',
    'RaffleState',
]
