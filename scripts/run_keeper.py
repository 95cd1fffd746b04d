"""
Run a local raffle: deploy on a development chain, serve the HTTP API and run the upkeep keeper

Usage:
  python scripts/run_keeper.py --port 8000 --poll 5

The keeper also plays the randomness node for the mock coordinator, so a
full cycle completes without any external service.
"""

import argparse
import asyncio
import os
import sys
import threading

from dotenv import load_dotenv

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv()

from utils.error_helpers import log_exceptions  # noqa: E402
from utils.logging_config import log_raffle_event, setup_logging  # noqa: E402
from vrf_raffle.api import create_app  # noqa: E402
from vrf_raffle.config import KEEPER_POLL_SECONDS, NETWORK  # noqa: E402
from vrf_raffle.deploy import deploy_raffle  # noqa: E402
from vrf_raffle.keeper import setup_keeper  # noqa: E402


async def run(args, logger):
    deployment = deploy_raffle(args.network)
    raffle = deployment.raffle

    for event_name in ('EnteredRaffle', 'RequestedRaffleWinner', 'WinnerPicked'):
        raffle.on(event_name, lambda event: log_raffle_event(logger, event, raffle=raffle.address))

    app = create_app(raffle)
    server = threading.Thread(
        target=app.run,
        kwargs={'host': '0.0.0.0', 'port': args.port, 'use_reloader': False},
        daemon=True,
    )
    server.start()
    logger.info(f"📡 API listening on port {args.port}")

    keeper = await setup_keeper(raffle, poll_seconds=args.poll, auto_fulfill=deployment.mock)
    try:
        await keeper.task
    finally:
        keeper.stop()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run a local raffle with its keeper")
    parser.add_argument('--network', dest='network', default=NETWORK)
    parser.add_argument('--port', dest='port', type=int, default=int(os.getenv('PORT', '8000')))
    parser.add_argument('--poll', dest='poll', type=float, default=KEEPER_POLL_SECONDS)
    parser.add_argument('--log-file', dest='log_file', default=os.getenv('LOG_FILE'))
    args = parser.parse_args(argv)

    logger = setup_logging('vrf_raffle', log_file=args.log_file)
    setup_logging('utils', log_file=args.log_file)

    with log_exceptions("running raffle keeper", network=args.network):
        try:
            asyncio.run(run(args, logger))
        except KeyboardInterrupt:
            logger.info("🛑 Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
