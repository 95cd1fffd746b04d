"""
Raffle Errors
Every failed raffle or oracle operation raises one of these to its caller
"""


class RaffleError(Exception):
    """Base class for rejected raffle operations"""

    error_name = "Raffle__Error"

    def __init__(self, message=None):
        super().__init__(message or self.error_name)

    def details(self):
        """Diagnostic payload for logs and API responses"""
        return {}


class NotOpen(RaffleError):
    """Entry attempted while the raffle is calculating a winner"""

    error_name = "Raffle__NotOpen"

    def __init__(self, raffle_state=None):
        self.raffle_state = raffle_state
        super().__init__(f"{self.error_name}(): raffle is {raffle_state}")

    def details(self):
        return {"raffle_state": self.raffle_state}


class NotEnoughEntered(RaffleError):
    """Payment below the entrance fee"""

    error_name = "Raffle__NotEnoughEthEntered"

    def __init__(self, payment, entrance_fee):
        self.payment = payment
        self.entrance_fee = entrance_fee
        super().__init__(f"{self.error_name}(): paid {payment}, entrance fee is {entrance_fee}")

    def details(self):
        return {"payment": self.payment, "entrance_fee": self.entrance_fee}


class UpkeepNotNeeded(RaffleError):
    """performUpkeep called while the upkeep predicate is false"""

    error_name = "Raffle__UpkeepNotNeeded"

    def __init__(self, balance, num_players, raffle_state):
        self.balance = balance
        self.num_players = num_players
        self.raffle_state = raffle_state
        super().__init__(
            f"{self.error_name}(balance={balance}, num_players={num_players}, raffle_state={raffle_state})"
        )

    def details(self):
        return {
            "balance": self.balance,
            "num_players": self.num_players,
            "raffle_state": self.raffle_state,
        }


class UnrecognizedRequest(RaffleError):
    """Fulfillment for a request id that is not the pending request"""

    error_name = "Raffle__UnrecognizedRequest"

    def __init__(self, request_id, message=None):
        self.request_id = request_id
        super().__init__(message or f"{self.error_name}(request_id={request_id})")

    def details(self):
        return {"request_id": self.request_id}


class TransferFailed(RaffleError):
    """Winner payout could not be completed"""

    error_name = "Raffle__TransferFailed"

    def __init__(self, recipient, amount):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"{self.error_name}(recipient={recipient}, amount={amount})")

    def details(self):
        return {"recipient": self.recipient, "amount": self.amount}


class PlayerIndexOutOfRange(RaffleError, IndexError):
    """get_player called with an index past the entrant list"""

    error_name = "Raffle__PlayerIndexOutOfRange"

    def __init__(self, index, num_players):
        self.index = index
        self.num_players = num_players
        super().__init__(f"player index {index} out of range ({num_players} players)")

    def details(self):
        return {"index": self.index, "num_players": self.num_players}


# Randomness oracle errors

class OracleError(RaffleError):
    error_name = "VRFCoordinator__Error"


class InvalidSubscription(OracleError):
    error_name = "InvalidSubscription"

    def __init__(self, subscription_id):
        self.subscription_id = subscription_id
        super().__init__(f"{self.error_name}(subscription_id={subscription_id})")

    def details(self):
        return {"subscription_id": self.subscription_id}


class InvalidConsumer(OracleError):
    error_name = "InvalidConsumer"

    def __init__(self, subscription_id, consumer):
        self.subscription_id = subscription_id
        self.consumer = consumer
        super().__init__(f"{self.error_name}(subscription_id={subscription_id}, consumer={consumer})")

    def details(self):
        return {"subscription_id": self.subscription_id, "consumer": self.consumer}


class InsufficientBalance(OracleError):
    error_name = "InsufficientBalance"

    def __init__(self, subscription_id, balance, payment):
        self.subscription_id = subscription_id
        self.balance = balance
        self.payment = payment
        super().__init__(f"{self.error_name}(subscription_id={subscription_id}, balance={balance}, payment={payment})")

    def details(self):
        return {"subscription_id": self.subscription_id, "balance": self.balance, "payment": self.payment}


class NonexistentRequest(UnrecognizedRequest, OracleError):
    """The coordinator has no record of the request id"""

    error_name = "nonexistent request"

    def __init__(self, request_id):
        super().__init__(request_id, message="nonexistent request")
