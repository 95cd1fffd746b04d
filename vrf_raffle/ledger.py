"""
Account Ledger
Holds account balances and performs the payout credit to raffle winners
"""

import logging

from sqlalchemy import text

from .database import engine_lock
from .errors import TransferFailed

logger = logging.getLogger(__name__)


class Ledger:
    """Account balances shared by every raffle on the same engine"""

    def __init__(self, engine):
        self.engine = engine
        self._lock = engine_lock(engine)

    def open_account(self, account, balance=0, accepts_payments=True):
        """
        Create or overwrite an account

        Args:
            account: Account identifier
            balance: Starting balance in wei
            accepts_payments: False models a recipient that rejects incoming funds

        Returns:
            str: The account identifier
        """
        if balance < 0:
            raise ValueError("balance cannot be negative")

        with self._lock, self.engine.begin() as conn:
            exists = self._fetch(conn, account) is not None
            if exists:
                conn.execute(text("""
                    UPDATE ledger_accounts
                    SET balance = :balance, accepts_payments = :accepts
                    WHERE account = :account
                """), {'account': account, 'balance': str(balance), 'accepts': accepts_payments})
            else:
                conn.execute(text("""
                    INSERT INTO ledger_accounts (account, balance, accepts_payments)
                    VALUES (:account, :balance, :accepts)
                """), {'account': account, 'balance': str(balance), 'accepts': accepts_payments})

        logger.debug(f"Opened account {account} (balance: {balance}, accepts payments: {accepts_payments})")
        return account

    def set_accepts_payments(self, account, accepts_payments):
        with self._lock, self.engine.begin() as conn:
            if self._fetch(conn, account) is None:
                raise LookupError(f"Unknown account: {account}")
            conn.execute(text("""
                UPDATE ledger_accounts SET accepts_payments = :accepts WHERE account = :account
            """), {'account': account, 'accepts': accepts_payments})

    def balance_of(self, account):
        """Balance in wei (0 for accounts never seen)"""
        with self._lock, self.engine.begin() as conn:
            row = self._fetch(conn, account)
        return int(row[0]) if row else 0

    def credit(self, conn, account, amount):
        """
        Credit an account inside the caller's transaction

        Raises TransferFailed when the recipient rejects funds; the caller's
        transaction is expected to roll back.

        Args:
            conn: Open SQLAlchemy connection (inside engine.begin())
            account: Recipient
            amount: Wei to credit

        Returns:
            int: New balance
        """
        if amount < 0:
            raise ValueError("amount cannot be negative")

        row = self._fetch(conn, account)
        if row is None:
            conn.execute(text("""
                INSERT INTO ledger_accounts (account, balance, accepts_payments)
                VALUES (:account, :balance, :accepts)
            """), {'account': account, 'balance': str(amount), 'accepts': True})
            return amount

        balance, accepts_payments = int(row[0]), bool(row[1])
        if not accepts_payments:
            logger.error(f"❌ Transfer of {amount} wei rejected by {account}")
            raise TransferFailed(account, amount)

        new_balance = balance + amount
        conn.execute(text("""
            UPDATE ledger_accounts SET balance = :balance WHERE account = :account
        """), {'account': account, 'balance': str(new_balance)})
        return new_balance

    @staticmethod
    def _fetch(conn, account):
        result = conn.execute(text("""
            SELECT balance, accepts_payments FROM ledger_accounts WHERE account = :account
        """), {'account': account})
        return result.fetchone()
