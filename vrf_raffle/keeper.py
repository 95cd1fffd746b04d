"""
Upkeep Keeper
Polls the raffle's upkeep predicate and performs upkeep when it is needed
"""

import asyncio
import logging

from utils.logging_config import log_error

from .config import KEEPER_POLL_SECONDS
from .errors import RaffleError, UpkeepNotNeeded
from .types import RaffleState

logger = logging.getLogger(__name__)


class UpkeepKeeper:
    """Drives a raffle through its cycles"""

    def __init__(self, raffle, poll_seconds=KEEPER_POLL_SECONDS, auto_fulfill=False):
        """
        Initialize the keeper

        Args:
            raffle: Raffle to maintain
            poll_seconds: Delay between two checks
            auto_fulfill: Also fulfill pending randomness requests on the raffle's
                coordinator (local mock coordinators only)
        """
        self.raffle = raffle
        self.poll_seconds = poll_seconds
        self.auto_fulfill = auto_fulfill
        self.task = None
        self._stop_event = None

        logger.info(f"⏱️ Upkeep keeper initialized for {raffle.address} "
                    f"(poll: {poll_seconds}s, auto_fulfill: {auto_fulfill})")

    def check_and_perform(self):
        """
        One keeper round: check upkeep, perform it when needed

        Returns:
            int: Request id when upkeep was performed, else None
        """
        upkeep_needed, perform_data = self.raffle.check_upkeep()
        if not upkeep_needed:
            self._warn_if_stuck()
            return None

        try:
            return self.raffle.perform_upkeep(perform_data)
        except UpkeepNotNeeded as e:
            # Conditions changed between check and perform
            logger.warning(f"Upkeep no longer needed when performing: {e}")
            return None

    def fulfill_pending(self):
        """
        Fulfill this raffle's pending requests on a mock coordinator

        Returns:
            list[int]: Fulfilled request ids
        """
        coordinator = self.raffle.vrf_coordinator
        pending_request_id = self.raffle.get_pending_request_id()
        fulfilled = []
        for request_id, consumer in coordinator.pending_requests():
            # Only the raffle's current request can be accepted
            if consumer is not self.raffle or request_id != pending_request_id:
                continue
            try:
                coordinator.fulfill_random_words(request_id, consumer)
            except RaffleError as e:
                log_error(logger, e, f"Could not fulfill request #{request_id}")
                continue
            fulfilled.append(request_id)
        return fulfilled

    def tick(self):
        """
        Run one full round

        Returns:
            dict: What happened this round
        """
        request_id = self.check_and_perform()
        fulfilled = self.fulfill_pending() if self.auto_fulfill else []
        return {
            'request_id': request_id,
            'fulfilled': fulfilled,
        }

    def _warn_if_stuck(self):
        snapshot = self.raffle.snapshot()
        if snapshot.raffle_state != RaffleState.CALCULATING or snapshot.requested_at is None:
            return

        waiting = self.raffle.clock.now() - snapshot.requested_at
        if waiting >= 2 * snapshot.interval:
            logger.warning(f"⚠️ Raffle {snapshot.address} has waited {waiting}s for randomness "
                           f"(request #{snapshot.pending_request_id}); no automatic recovery")

    async def run(self, stop_event=None, max_ticks=None):
        """
        Poll until stopped

        Args:
            stop_event: asyncio.Event that ends the loop when set
            max_ticks: Stop after this many rounds (None = forever)
        """
        self._stop_event = stop_event or asyncio.Event()
        ticks = 0

        while not self._stop_event.is_set():
            try:
                result = self.tick()
                if result['request_id'] is not None or result['fulfilled']:
                    logger.info(f"Keeper round: {result}")
            except RaffleError as e:
                log_error(logger, e, "Keeper round failed")

            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info(f"🛑 Upkeep keeper stopped after {ticks} rounds")

    def stop(self):
        if self._stop_event is not None:
            self._stop_event.set()


async def setup_keeper(raffle, poll_seconds=KEEPER_POLL_SECONDS, auto_fulfill=False):
    """
    Start an upkeep keeper as a background task on the running event loop

    Args:
        raffle: Raffle to maintain
        poll_seconds: Delay between two checks
        auto_fulfill: Fulfill pending mock requests each round

    Returns:
        UpkeepKeeper instance (its task is keeper.task)
    """
    keeper = UpkeepKeeper(raffle, poll_seconds=poll_seconds, auto_fulfill=auto_fulfill)
    stop_event = asyncio.Event()
    keeper._stop_event = stop_event
    keeper.task = asyncio.create_task(keeper.run(stop_event))
    logger.info("✅ Upkeep keeper task started")
    return keeper
