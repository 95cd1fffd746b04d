"""
Raffle types
Lifecycle state and the read-only snapshot every operation works from
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple


class RaffleState(IntEnum):
    OPEN = 0
    CALCULATING = 1


@dataclass(frozen=True)
class RaffleSnapshot:
    """Consistent read of the raffle's observable fields"""
    address: str
    raffle_state: RaffleState
    entrance_fee: int
    interval: int
    balance: int
    players: Tuple[str, ...]
    last_timestamp: int
    recent_winner: Optional[str]
    pending_request_id: Optional[int]
    requested_at: Optional[int]

    @property
    def num_players(self):
        return len(self.players)

    def to_dict(self):
        return {
            'address': self.address,
            'raffle_state': self.raffle_state.name,
            'entrance_fee': self.entrance_fee,
            'interval': self.interval,
            'balance': self.balance,
            'num_players': self.num_players,
            'players': list(self.players),
            'last_timestamp': self.last_timestamp,
            'recent_winner': self.recent_winner,
            'pending_request_id': self.pending_request_id,
        }
