"""
Raffle Deployment
Deploys the mock randomness coordinator on development chains and wires a raffle to it
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import NETWORK, VRF_BASE_FEE, VRF_GAS_PRICE_LINK, VRF_SUB_FUND_AMOUNT, RaffleConfig, get_network_config
from .oracle import VRFCoordinatorV2Mock
from .raffle import Raffle

logger = logging.getLogger(__name__)


@dataclass
class Deployment:
    network: str
    chain_id: int
    raffle: Raffle
    vrf_coordinator: object
    subscription_id: int
    mock: bool


def deploy_mocks(network_name=NETWORK):
    """
    Deploy a mock VRF coordinator when running on a development chain

    Args:
        network_name: Target network

    Returns:
        VRFCoordinatorV2Mock, or None on live networks
    """
    _, network_config = get_network_config(network_name)
    if not network_config.is_development:
        logger.info(f"Network {network_name} uses a live coordinator, no mocks deployed")
        return None

    logger.info("...Local Network Detected! Deploying Mocks...")
    coordinator = VRFCoordinatorV2Mock(base_fee=VRF_BASE_FEE, gas_price_link=VRF_GAS_PRICE_LINK)
    logger.info("Mocks Deployed!")
    logger.info("---------------------------------")
    return coordinator


def deploy_raffle(network_name=NETWORK, vrf_coordinator=None, engine=None, clock=None,
                  publisher=None, fund_amount=VRF_SUB_FUND_AMOUNT, subscription_id: Optional[int] = None):
    """
    Deploy a raffle for a network

    On development chains a mock coordinator is deployed (unless one is
    given), a subscription is created and funded, and the raffle is added
    as its consumer. Live networks need a coordinator client and a funded
    subscription id.

    Args:
        network_name: Network name from NETWORK_CONFIG
        vrf_coordinator: Coordinator to use instead of deploying a mock
        engine: SQLAlchemy engine for raffle state
        clock: Time source
        publisher: Notification publisher
        fund_amount: Amount to fund a fresh mock subscription with
        subscription_id: Existing subscription to use

    Returns:
        Deployment
    """
    chain_id, network_config = get_network_config(network_name)
    mock = False

    if network_config.is_development:
        if vrf_coordinator is None:
            vrf_coordinator = deploy_mocks(network_name)
        if subscription_id is None:
            subscription_id = vrf_coordinator.create_subscription()
            vrf_coordinator.fund_subscription(subscription_id, fund_amount)
        mock = isinstance(vrf_coordinator, VRFCoordinatorV2Mock)
    else:
        if vrf_coordinator is None:
            raise ValueError(f"Network {network_name} needs a VRF coordinator client "
                             f"(coordinator address: {network_config.vrf_coordinator})")
        if subscription_id is None:
            subscription_id = network_config.subscription_id
        if not subscription_id:
            raise ValueError(f"Network {network_name} needs a funded VRF subscription id")

    config = RaffleConfig.from_network(network_config, subscription_id=subscription_id)
    raffle = Raffle(vrf_coordinator, config=config, engine=engine, clock=clock, publisher=publisher)

    if mock:
        vrf_coordinator.add_consumer(subscription_id, raffle)

    logger.info(f"✅ Raffle deployed on {network_name} (chain {chain_id}) at {raffle.address}, "
                f"subscription #{subscription_id}")

    return Deployment(
        network=network_config.name,
        chain_id=chain_id,
        raffle=raffle,
        vrf_coordinator=vrf_coordinator,
        subscription_id=subscription_id,
        mock=mock,
    )
