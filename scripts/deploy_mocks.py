"""
Deploy a raffle (and, on development chains, the mock VRF coordinator)

Usage:
  python scripts/deploy_mocks.py --network hardhat

Reads RAFFLE_*, VRF_* and DATABASE_URL from the environment / .env file.
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read at import time, so the .env file goes first
load_dotenv()

from utils.logging_config import setup_logging  # noqa: E402
from vrf_raffle.config import NETWORK  # noqa: E402
from vrf_raffle.database import create_raffle_engine, verify_raffle_schema  # noqa: E402
from vrf_raffle.deploy import deploy_raffle  # noqa: E402


def main(argv=None):
    parser = argparse.ArgumentParser(description="Deploy a raffle")
    parser.add_argument('--network', dest='network', default=NETWORK)
    parser.add_argument('--database-url', dest='database_url', default=None)
    args = parser.parse_args(argv)

    logger = setup_logging('vrf_raffle')

    engine = create_raffle_engine(args.database_url)
    deployment = deploy_raffle(args.network, engine=engine)

    status = verify_raffle_schema(engine)
    missing = [table for table, present in status.items() if not present]
    if missing:
        logger.error(f"❌ Missing tables: {', '.join(missing)}")
        return 1

    raffle = deployment.raffle
    logger.info(f"Network:          {deployment.network} (chain {deployment.chain_id})")
    logger.info(f"Raffle:           {raffle.address}")
    logger.info(f"Coordinator:      {getattr(deployment.vrf_coordinator, 'address', deployment.vrf_coordinator)}")
    logger.info(f"Subscription:     #{deployment.subscription_id}")
    logger.info(f"Entrance fee:     {raffle.get_entrance_fee()} wei")
    logger.info(f"Interval:         {raffle.get_interval()}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
