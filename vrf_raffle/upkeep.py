"""
Upkeep predicate

Decides whether the current cycle should be closed and a winner requested.
Pure functions over a RaffleSnapshot: no I/O, no hidden state.
"""

from .types import RaffleState


def upkeep_blockers(snapshot, now):
    """
    List the conditions that currently prevent upkeep

    Args:
        snapshot: RaffleSnapshot
        now: Current timestamp (seconds)

    Returns:
        list[str]: Empty when upkeep is needed
    """
    blockers = []
    if snapshot.raffle_state != RaffleState.OPEN:
        blockers.append("raffle is not open")
    if now - snapshot.last_timestamp < snapshot.interval:
        blockers.append("interval has not passed")
    if not snapshot.players:
        blockers.append("no players")
    if snapshot.balance <= 0:
        blockers.append("no balance")
    return blockers


def upkeep_needed(snapshot, now):
    """True iff the raffle is open, the interval has passed, and it has players and a balance"""
    return not upkeep_blockers(snapshot, now)


def seconds_until_upkeep(snapshot, now):
    """Seconds left before the interval condition holds (0 once it does)"""
    return max(0, snapshot.last_timestamp + snapshot.interval - now)
