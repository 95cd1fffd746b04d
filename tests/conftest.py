"""
Shared fixtures for the raffle tests
Every test gets its own in-memory database, manual clock and mock coordinator
"""

import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vrf_raffle.clock import ManualClock
from vrf_raffle.config import RaffleConfig
from vrf_raffle.database import create_raffle_engine
from vrf_raffle.deploy import deploy_raffle
from vrf_raffle.oracle import VRFCoordinatorV2Mock
from vrf_raffle.raffle import Raffle

START_TIME = 1_700_000_000


class RecordingPublisher:
    """Stands in for the Redis publisher and keeps what it was given"""

    enabled = True

    def __init__(self):
        self.published = []

    def publish_raffle_event(self, event):
        self.published.append((event.name, event.to_dict()))
        return True


@pytest.fixture
def clock():
    return ManualClock(start=START_TIME)


@pytest.fixture
def engine():
    return create_raffle_engine("sqlite://")


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def vrf_coordinator():
    return VRFCoordinatorV2Mock()


@pytest.fixture
def deployment(vrf_coordinator, engine, clock, publisher):
    return deploy_raffle("hardhat", vrf_coordinator=vrf_coordinator, engine=engine,
                         clock=clock, publisher=publisher)


@pytest.fixture
def raffle(deployment):
    return deployment.raffle


@pytest.fixture
def entrance_fee(raffle):
    return raffle.get_entrance_fee()


@pytest.fixture
def accounts():
    return [f"0x{i:040x}" for i in range(1, 11)]


@pytest.fixture
def make_raffle(vrf_coordinator, engine, clock, publisher):
    """Factory for raffles with custom settings, registered on a funded subscription"""
    def factory(**overrides):
        subscription_id = vrf_coordinator.create_subscription()
        vrf_coordinator.fund_subscription(subscription_id, 30 * 10**18)
        config = RaffleConfig(subscription_id=subscription_id, **overrides)
        raffle = Raffle(vrf_coordinator, config=config, engine=engine, clock=clock, publisher=publisher)
        vrf_coordinator.add_consumer(subscription_id, raffle)
        return raffle

    return factory


@pytest.fixture
def pass_interval(clock):
    """Move time just past a raffle's interval (evm_increaseTime + evm_mine)"""
    def advance(raffle, extra=1):
        return clock.advance(raffle.get_interval() + extra)

    return advance


@pytest.fixture
def ready_raffle(raffle, pass_interval, accounts, entrance_fee):
    """One player entered and the interval has passed"""
    raffle.enter_raffle(accounts[0], entrance_fee)
    pass_interval(raffle)
    return raffle
