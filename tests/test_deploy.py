"""
Deployment, Storage and Clock Tests
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import event, inspect

from vrf_raffle.clock import ManualClock
from vrf_raffle.database import (
    create_raffle_engine,
    engine_lock,
    row_lock_clause,
    setup_raffle_database,
    verify_raffle_schema,
)
from vrf_raffle.deploy import deploy_mocks, deploy_raffle
from vrf_raffle.errors import TransferFailed
from vrf_raffle.ledger import Ledger
from vrf_raffle.oracle import VRFCoordinatorV2Mock


class TestDeploy:
    def test_development_chain_deploys_mocks(self, engine, clock, publisher):
        deployment = deploy_raffle("hardhat", engine=engine, clock=clock, publisher=publisher)

        assert deployment.mock
        assert deployment.chain_id == 31337
        assert isinstance(deployment.vrf_coordinator, VRFCoordinatorV2Mock)
        subscription = deployment.vrf_coordinator.get_subscription(deployment.subscription_id)
        assert subscription['balance'] > 0
        assert subscription['consumers'] == [deployment.raffle.address]

    def test_deploy_mocks_only_on_development_chains(self):
        assert isinstance(deploy_mocks("localhost"), VRFCoordinatorV2Mock)
        assert deploy_mocks("sepolia") is None

    def test_live_network_needs_a_coordinator(self, engine):
        with pytest.raises(ValueError):
            deploy_raffle("sepolia", engine=engine)

    def test_live_network_needs_a_subscription(self, engine, monkeypatch):
        from vrf_raffle.config import NETWORK_CONFIG
        monkeypatch.setattr(NETWORK_CONFIG[11155111], "subscription_id", 0)
        with pytest.raises(ValueError):
            deploy_raffle("sepolia", vrf_coordinator=VRFCoordinatorV2Mock(), engine=engine)

    def test_live_network_with_existing_subscription(self, engine, clock, publisher):
        coordinator = VRFCoordinatorV2Mock()
        deployment = deploy_raffle("sepolia", vrf_coordinator=coordinator, engine=engine,
                                   clock=clock, publisher=publisher, subscription_id=12)
        assert not deployment.mock
        assert deployment.subscription_id == 12
        assert deployment.raffle.config.subscription_id == 12

    def test_unknown_network(self, engine):
        with pytest.raises(LookupError):
            deploy_raffle("atlantis", engine=engine)


class TestDatabase:
    def test_schema_is_created(self, engine, raffle):
        assert verify_raffle_schema(engine) == {
            'raffle_state': True,
            'raffle_players': True,
            'raffle_winners': True,
            'ledger_accounts': True,
        }

    def test_setup_is_idempotent(self, engine):
        setup_raffle_database(engine)
        setup_raffle_database(engine)
        assert 'raffle_state' in inspect(engine).get_table_names()

    def test_empty_database_is_missing_tables(self):
        status = verify_raffle_schema(create_raffle_engine("sqlite://"))
        assert not any(status.values())

    def test_engine_lock_is_shared_per_engine(self, engine):
        assert engine_lock(engine) is engine_lock(engine)
        assert engine_lock(engine) is not engine_lock(create_raffle_engine("sqlite://"))

    @pytest.mark.parametrize("dialect, clause", [
        ("postgresql", " FOR UPDATE"),
        ("mysql", " FOR UPDATE"),
        ("sqlite", ""),
    ])
    def test_row_lock_clause(self, dialect, clause):
        conn = SimpleNamespace(dialect=SimpleNamespace(name=dialect))
        assert row_lock_clause(conn) == clause

    def test_mutating_operations_lock_the_raffle_row(self, ready_raffle, engine, monkeypatch):
        monkeypatch.setattr("vrf_raffle.raffle.row_lock_clause", lambda conn: " /* row lock */")
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", record)
        try:
            ready_raffle.snapshot()
            assert not any("row lock" in statement for statement in statements)

            request_id = ready_raffle.perform_upkeep()
            ready_raffle.fulfill_random_words(request_id, [0])
            ready_raffle.enter_raffle("0xlate", ready_raffle.get_entrance_fee())
        finally:
            event.remove(engine, "before_cursor_execute", record)

        assert sum("row lock" in statement for statement in statements) == 3


class TestLedger:
    @pytest.fixture
    def ledger(self, engine):
        setup_raffle_database(engine)
        return Ledger(engine)

    def test_unknown_account_has_zero_balance(self, ledger):
        assert ledger.balance_of("0xnobody") == 0

    def test_open_account(self, ledger):
        ledger.open_account("0xalice", balance=5)
        assert ledger.balance_of("0xalice") == 5

    def test_negative_opening_balance(self, ledger):
        with pytest.raises(ValueError):
            ledger.open_account("0xalice", balance=-1)

    def test_credit(self, ledger, engine):
        ledger.open_account("0xalice", balance=5)
        with engine.begin() as conn:
            assert ledger.credit(conn, "0xalice", 10) == 15
            assert ledger.credit(conn, "0xbob", 3) == 3
        assert ledger.balance_of("0xalice") == 15
        assert ledger.balance_of("0xbob") == 3

    def test_rejecting_account(self, ledger, engine):
        ledger.open_account("0xcontract", accepts_payments=False)
        with pytest.raises(TransferFailed):
            with engine.begin() as conn:
                ledger.credit(conn, "0xcontract", 10)
        assert ledger.balance_of("0xcontract") == 0

    def test_set_accepts_payments_for_unknown_account(self, ledger):
        with pytest.raises(LookupError):
            ledger.set_accepts_payments("0xnobody", False)


class TestManualClock:
    def test_advance(self):
        clock = ManualClock(start=100)
        assert clock.advance(30) == 130
        assert clock.now() == 130

    def test_time_only_moves_forward(self):
        clock = ManualClock(start=100)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(99)
        assert clock.set(200) == 200
