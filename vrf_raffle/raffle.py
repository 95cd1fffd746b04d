"""
Raffle State Machine
Entry, upkeep and randomness fulfillment for a single recurring raffle

Lifecycle of one cycle:
    OPEN         players enter by paying at least the entrance fee
    (interval)   keeper sees check_upkeep_needed() == True
    CALCULATING  perform_upkeep() requested a random word from the coordinator
    OPEN         fulfill_random_words() paid the winner and reset the raffle

Every mutating operation runs as one database transaction under the engine
lock and reads the raffle row with a row lock where the backend has one, so
processes sharing a database also take turns. Anything raised inside rolls the whole operation back, including a
rejected winner payout.
"""

import logging
import secrets

from sqlalchemy import text

from utils.redis_publisher import raffle_redis_publisher

from .clock import SystemClock
from .config import RaffleConfig
from .database import create_raffle_engine, engine_lock, row_lock_clause, setup_raffle_database
from .errors import NotEnoughEntered, NotOpen, PlayerIndexOutOfRange, UnrecognizedRequest, UpkeepNotNeeded
from .events import EnteredRaffle, EventEmitter, RequestedRaffleWinner, WinnerPicked
from .ledger import Ledger
from .types import RaffleSnapshot, RaffleState
from .upkeep import upkeep_blockers, upkeep_needed

logger = logging.getLogger(__name__)


class Raffle:
    """A single raffle: N entrants, one winner per cycle, fixed fee and interval"""

    def __init__(self, vrf_coordinator, config=None, engine=None, clock=None, publisher=None, address=None):
        """
        Deploy (or re-attach to) a raffle

        Args:
            vrf_coordinator: RandomnessOracle used to request winners
            config: RaffleConfig (default: from environment)
            engine: SQLAlchemy engine holding raffle state (default: in-memory SQLite)
            clock: Time source with now() (default: SystemClock)
            publisher: Redis publisher for notifications (default: global publisher)
            address: Existing raffle address to re-attach to
        """
        self.config = config or RaffleConfig.from_env()
        self.vrf_coordinator = vrf_coordinator
        self.engine = engine or create_raffle_engine()
        self.clock = clock or SystemClock()
        self.ledger = Ledger(self.engine)
        self.emitter = EventEmitter(publisher if publisher is not None else raffle_redis_publisher)
        self.address = address or "0x" + secrets.token_hex(20)
        self._lock = engine_lock(self.engine)

        setup_raffle_database(self.engine)
        self._deploy()

    def _deploy(self):
        with self._lock, self.engine.begin() as conn:
            row = conn.execute(text("""
                SELECT entrance_fee, interval_seconds FROM raffle_state WHERE address = :address
            """), {'address': self.address}).fetchone()

            if row:
                if int(row[0]) != self.config.entrance_fee or row[1] != self.config.interval:
                    raise ValueError(f"Raffle {self.address} was deployed with different settings")
                logger.info(f"🔁 Re-attached to raffle {self.address}")
                return

            conn.execute(text("""
                INSERT INTO raffle_state
                    (address, raffle_state, entrance_fee, interval_seconds, pool_balance, last_timestamp)
                VALUES
                    (:address, :state, :entrance_fee, :interval, '0', :now)
            """), {
                'address': self.address,
                'state': RaffleState.OPEN.name,
                'entrance_fee': str(self.config.entrance_fee),
                'interval': self.config.interval,
                'now': self.clock.now(),
            })

        logger.info(f"🎟️ Raffle deployed at {self.address} "
                    f"(entrance fee: {self.config.entrance_fee}, interval: {self.config.interval}s)")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _snapshot(self, conn, for_update=False):
        lock_clause = row_lock_clause(conn) if for_update else ""
        row = conn.execute(text("""
            SELECT raffle_state, entrance_fee, interval_seconds, pool_balance, last_timestamp,
                   recent_winner, pending_request_id, requested_at
            FROM raffle_state
            WHERE address = :address
        """ + lock_clause), {'address': self.address}).fetchone()

        players = conn.execute(text("""
            SELECT player FROM raffle_players
            WHERE raffle_address = :address
            ORDER BY position
        """), {'address': self.address})

        return RaffleSnapshot(
            address=self.address,
            raffle_state=RaffleState[row[0]],
            entrance_fee=int(row[1]),
            interval=row[2],
            balance=int(row[3]),
            players=tuple(player for (player,) in players),
            last_timestamp=row[4],
            recent_winner=row[5],
            pending_request_id=row[6],
            requested_at=row[7],
        )

    def snapshot(self):
        """Consistent read of every observable field"""
        with self._lock, self.engine.begin() as conn:
            return self._snapshot(conn)

    def get_entrance_fee(self):
        return self.config.entrance_fee

    def get_interval(self):
        return self.config.interval

    def get_request_confirmations(self):
        return self.config.request_confirmations

    def get_num_words(self):
        return self.config.num_words

    def get_raffle_state(self):
        return self.snapshot().raffle_state

    def get_player(self, index):
        players = self.snapshot().players
        if index < 0 or index >= len(players):
            raise PlayerIndexOutOfRange(index, len(players))
        return players[index]

    def get_num_players(self):
        return self.snapshot().num_players

    def get_recent_winner(self):
        return self.snapshot().recent_winner

    def get_latest_timestamp(self):
        return self.snapshot().last_timestamp

    def get_balance(self):
        """Pool balance collected since the last payout"""
        return self.snapshot().balance

    def get_pending_request_id(self):
        return self.snapshot().pending_request_id

    def get_winner_history(self, limit=5):
        """
        Recent payouts, newest first

        Args:
            limit: Number of payouts to return

        Returns:
            list: Payout dicts
        """
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(text("""
                SELECT request_id, winner, amount, random_word, num_players, picked_at
                FROM raffle_winners
                WHERE raffle_address = :address
                ORDER BY picked_at DESC, request_id DESC
                LIMIT :limit
            """), {'address': self.address, 'limit': limit})

            return [
                {
                    'request_id': row[0],
                    'winner': row[1],
                    'amount': int(row[2]),
                    'random_word': int(row[3]),
                    'num_players': row[4],
                    'picked_at': row[5],
                }
                for row in result
            ]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @property
    def events(self):
        return self.emitter.events

    def on(self, event_name, callback):
        return self.emitter.on(event_name, callback)

    def once(self, event_name, callback):
        return self.emitter.once(event_name, callback)

    # ------------------------------------------------------------------
    # Entry
    # ------------------------------------------------------------------

    def enter_raffle(self, player, payment):
        """
        Buy one ticket for the current cycle

        The same player may enter several times; each entry is its own ticket.

        Args:
            player: Account identifier of the entrant
            payment: Amount tendered in wei

        Raises:
            NotEnoughEntered: payment below the entrance fee
            NotOpen: raffle is calculating a winner
        """
        with self._lock, self.engine.begin() as conn:
            snapshot = self._snapshot(conn, for_update=True)

            if payment < snapshot.entrance_fee:
                logger.warning(f"Entry by {player} rejected: paid {payment}, fee is {snapshot.entrance_fee}")
                raise NotEnoughEntered(payment, snapshot.entrance_fee)
            if snapshot.raffle_state != RaffleState.OPEN:
                logger.warning(f"Entry by {player} rejected: raffle is {snapshot.raffle_state.name}")
                raise NotOpen(snapshot.raffle_state.name)

            conn.execute(text("""
                INSERT INTO raffle_players (raffle_address, position, player, payment, entered_at)
                VALUES (:address, :position, :player, :payment, :now)
            """), {
                'address': self.address,
                'position': snapshot.num_players,
                'player': player,
                'payment': str(payment),
                'now': self.clock.now(),
            })
            conn.execute(text("""
                UPDATE raffle_state SET pool_balance = :balance WHERE address = :address
            """), {'address': self.address, 'balance': str(snapshot.balance + payment)})

        logger.info(f"✅ {player} entered the raffle ({payment} wei, ticket #{snapshot.num_players + 1})")
        self.emitter.emit(EnteredRaffle(player))

    # ------------------------------------------------------------------
    # Upkeep
    # ------------------------------------------------------------------

    def check_upkeep_needed(self):
        """True iff open, interval passed, has players and a balance. Read-only."""
        return upkeep_needed(self.snapshot(), self.clock.now())

    def check_upkeep(self, check_data=b""):
        """Keeper-compatible form: (upkeep_needed, perform_data)"""
        return self.check_upkeep_needed(), b""

    def perform_upkeep(self, perform_data=b""):
        """
        Close entries and request a random word for the winner

        Re-validates the upkeep predicate itself; time may have passed since
        the keeper checked.

        Returns:
            int: Request id of the pending randomness request

        Raises:
            UpkeepNotNeeded: predicate is false (includes a second call while calculating)
        """
        with self._lock, self.engine.begin() as conn:
            snapshot = self._snapshot(conn, for_update=True)
            now = self.clock.now()

            blockers = upkeep_blockers(snapshot, now)
            if blockers:
                logger.warning(f"Upkeep not needed: {', '.join(blockers)}")
                raise UpkeepNotNeeded(snapshot.balance, snapshot.num_players, int(snapshot.raffle_state))

            request_id = self.vrf_coordinator.request_random_words(
                self.config.gas_lane,
                self.config.subscription_id,
                self.config.request_confirmations,
                self.config.callback_gas_limit,
                self.config.num_words,
                self,
            )

            conn.execute(text("""
                UPDATE raffle_state
                SET raffle_state = :state, pending_request_id = :request_id, requested_at = :now
                WHERE address = :address
            """), {
                'address': self.address,
                'state': RaffleState.CALCULATING.name,
                'request_id': request_id,
                'now': now,
            })

        logger.info(f"🎲 Requested raffle winner (request #{request_id}, "
                    f"{snapshot.num_players} players, pool {snapshot.balance})")
        self.emitter.emit(RequestedRaffleWinner(request_id))
        return request_id

    # ------------------------------------------------------------------
    # Randomness callback
    # ------------------------------------------------------------------

    def fulfill_random_words(self, request_id, random_words):
        """
        Pick the winner, pay out the pool and reopen the raffle

        winner = players[random_words[0] % num_players]

        Args:
            request_id: Id of the pending randomness request
            random_words: Words delivered by the coordinator

        Returns:
            str: The winner

        Raises:
            UnrecognizedRequest: request_id is not the pending request
            TransferFailed: the winner rejected the payout (nothing is changed)
        """
        with self._lock, self.engine.begin() as conn:
            snapshot = self._snapshot(conn, for_update=True)

            if (snapshot.raffle_state != RaffleState.CALCULATING
                    or snapshot.pending_request_id is None
                    or snapshot.pending_request_id != request_id):
                logger.warning(f"Rejected fulfillment for unrecognized request #{request_id} "
                               f"(pending: {snapshot.pending_request_id})")
                raise UnrecognizedRequest(request_id)
            if not random_words:
                raise ValueError("random_words cannot be empty")

            random_word = random_words[0]
            index_of_winner = random_word % snapshot.num_players
            winner = snapshot.players[index_of_winner]
            amount = snapshot.balance
            now = self.clock.now()

            conn.execute(text("""
                UPDATE raffle_state
                SET raffle_state = :state,
                    recent_winner = :winner,
                    pool_balance = '0',
                    last_timestamp = :now,
                    pending_request_id = NULL,
                    requested_at = NULL
                WHERE address = :address
            """), {
                'address': self.address,
                'state': RaffleState.OPEN.name,
                'winner': winner,
                'now': now,
            })
            conn.execute(text("""
                DELETE FROM raffle_players WHERE raffle_address = :address
            """), {'address': self.address})
            conn.execute(text("""
                INSERT INTO raffle_winners
                    (raffle_address, request_id, winner, amount, random_word, num_players, picked_at)
                VALUES
                    (:address, :request_id, :winner, :amount, :random_word, :num_players, :now)
            """), {
                'address': self.address,
                'request_id': request_id,
                'winner': winner,
                'amount': str(amount),
                'random_word': str(random_word),
                'num_players': snapshot.num_players,
                'now': now,
            })

            # Raises TransferFailed and rolls back everything above
            self.ledger.credit(conn, winner, amount)

        logger.info(f"🎉 Winner: {winner} (ticket {index_of_winner + 1}/{snapshot.num_players}, paid {amount} wei)")
        self.emitter.emit(WinnerPicked(winner))
        return winner
