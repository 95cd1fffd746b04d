"""
Stateful Raffle Tests
Hypothesis drives random sequences of raffle operations and checks the
raffle's invariants after every step
"""

from hypothesis import settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, precondition, rule

from vrf_raffle.clock import ManualClock
from vrf_raffle.database import create_raffle_engine
from vrf_raffle.deploy import deploy_raffle
from vrf_raffle.errors import NotEnoughEntered, NotOpen, UnrecognizedRequest, UpkeepNotNeeded
from vrf_raffle.types import RaffleState

PLAYERS = [f"0x{i:040x}" for i in range(1, 6)]


class NullPublisher:
    enabled = False


class RaffleMachine(RuleBasedStateMachine):
    def __init__(self):
        super().__init__()
        self.clock = ManualClock(start=1_700_000_000)
        deployment = deploy_raffle("hardhat", engine=create_raffle_engine("sqlite://"),
                                   clock=self.clock, publisher=NullPublisher())
        self.raffle = deployment.raffle
        self.coordinator = deployment.vrf_coordinator
        self.fee = self.raffle.get_entrance_fee()

        # Model
        self.players = []
        self.balance = 0
        self.calculating = False
        self.last_timestamp = self.clock.now()
        self.paid_out = 0

    def upkeep_expected(self):
        return (not self.calculating
                and self.clock.now() - self.last_timestamp >= self.raffle.get_interval()
                and bool(self.players)
                and self.balance > 0)

    @rule(player=st.sampled_from(PLAYERS), extra=st.integers(min_value=-1, max_value=10**16))
    def enter(self, player, extra):
        payment = self.fee + extra
        try:
            self.raffle.enter_raffle(player, payment)
        except NotEnoughEntered:
            assert payment < self.fee
        except NotOpen:
            assert payment >= self.fee and self.calculating
        else:
            assert payment >= self.fee and not self.calculating
            self.players.append(player)
            self.balance += payment

    @rule(seconds=st.integers(min_value=0, max_value=60))
    def pass_time(self, seconds):
        self.clock.advance(seconds)

    @rule()
    def check_upkeep(self):
        assert self.raffle.check_upkeep_needed() == self.upkeep_expected()

    @rule()
    def perform_upkeep(self):
        expected = self.upkeep_expected()
        try:
            self.raffle.perform_upkeep()
        except UpkeepNotNeeded:
            assert not expected
        else:
            assert expected
            self.calculating = True

    @rule(request_id=st.integers(min_value=0, max_value=50))
    def fulfill_wrong_request(self, request_id):
        pending = self.raffle.get_pending_request_id()
        if request_id == pending:
            return
        try:
            self.raffle.fulfill_random_words(request_id, [1])
        except UnrecognizedRequest:
            pass
        else:
            raise AssertionError("fulfillment of an unrecognized request was accepted")

    @precondition(lambda self: self.calculating)
    @rule(word=st.integers(min_value=0, max_value=2**256 - 1))
    def fulfill(self, word):
        request_id = self.raffle.get_pending_request_id()
        expected_winner = self.players[word % len(self.players)]

        self.coordinator.fulfill_random_words_with_override(request_id, self.raffle, [word])

        assert self.raffle.get_recent_winner() == expected_winner
        self.paid_out += self.balance
        self.players = []
        self.balance = 0
        self.calculating = False
        self.last_timestamp = self.clock.now()

    @invariant()
    def matches_model(self):
        snapshot = self.raffle.snapshot()
        assert list(snapshot.players) == self.players
        assert snapshot.balance == self.balance
        assert snapshot.last_timestamp == self.last_timestamp
        assert (snapshot.raffle_state == RaffleState.CALCULATING) == self.calculating
        assert (snapshot.pending_request_id is not None) == self.calculating

    @invariant()
    def payouts_are_credited(self):
        credited = sum(self.raffle.ledger.balance_of(player) for player in PLAYERS)
        assert credited == self.paid_out


RaffleMachine.TestCase.settings = settings(max_examples=25, stateful_step_count=30, deadline=None)
TestRaffleStateMachine = RaffleMachine.TestCase
