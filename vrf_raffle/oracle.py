"""
Randomness Oracle
Interface the raffle needs from a verifiable-randomness coordinator, plus a
local mock coordinator for development chains and tests.

The request and the fulfillment are two independent calls tied together
only by the request id. The coordinator never calls back from inside
request_random_words.
"""

import hashlib
import logging
import secrets
import threading
from abc import ABC, abstractmethod

from .config import VRF_BASE_FEE, VRF_GAS_PRICE_LINK
from .errors import InsufficientBalance, InvalidConsumer, InvalidSubscription, NonexistentRequest, UnrecognizedRequest
from .events import EventEmitter, RandomWordsFulfilled, RandomWordsRequested

logger = logging.getLogger(__name__)


class RandomnessOracle(ABC):
    """What a raffle consumes from a randomness coordinator"""

    @abstractmethod
    def request_random_words(self, key_hash, subscription_id, request_confirmations,
                             callback_gas_limit, num_words, consumer):
        """
        Queue a randomness request and return immediately

        The coordinator later calls consumer.fulfill_random_words(request_id, words).

        Returns:
            int: Request id
        """


def derive_random_words(request_id, num_words):
    """Deterministic 256-bit words for a request: SHA-256 of 'request_id:index'"""
    return [
        int(hashlib.sha256(f"{request_id}:{i}".encode()).hexdigest(), 16)
        for i in range(num_words)
    ]


class VRFCoordinatorV2Mock(RandomnessOracle):
    """
    Local stand-in for a VRF coordinator

    Subscriptions pay for fulfillments: each one costs
    base_fee + gas_price_link * callback_gas_limit.
    """

    def __init__(self, base_fee=VRF_BASE_FEE, gas_price_link=VRF_GAS_PRICE_LINK):
        self.address = "0x" + secrets.token_hex(20)
        self.base_fee = base_fee
        self.gas_price_link = gas_price_link
        self.emitter = EventEmitter()
        self._subscriptions = {}
        self._requests = {}
        self._current_sub_id = 0
        self._next_request_id = 1
        self._lock = threading.Lock()

        logger.info(f"🎲 VRF coordinator mock deployed at {self.address} "
                    f"(base fee: {base_fee}, gas price link: {gas_price_link})")

    @property
    def events(self):
        return self.emitter.events

    # Subscriptions

    def create_subscription(self, owner=None):
        with self._lock:
            self._current_sub_id += 1
            subscription_id = self._current_sub_id
            self._subscriptions[subscription_id] = {
                'owner': owner,
                'balance': 0,
                'consumers': {},
            }
        logger.info(f"Created subscription #{subscription_id}")
        return subscription_id

    def fund_subscription(self, subscription_id, amount):
        if amount <= 0:
            raise ValueError("amount must be positive")
        with self._lock:
            subscription = self._get_subscription(subscription_id)
            subscription['balance'] += amount
            balance = subscription['balance']
        logger.info(f"Funded subscription #{subscription_id} with {amount} (balance: {balance})")
        return balance

    def add_consumer(self, subscription_id, consumer):
        with self._lock:
            subscription = self._get_subscription(subscription_id)
            subscription['consumers'][consumer.address] = consumer
        logger.info(f"Added consumer {consumer.address} to subscription #{subscription_id}")

    def remove_consumer(self, subscription_id, consumer):
        with self._lock:
            subscription = self._get_subscription(subscription_id)
            if consumer.address not in subscription['consumers']:
                raise InvalidConsumer(subscription_id, consumer.address)
            del subscription['consumers'][consumer.address]

    def get_subscription(self, subscription_id):
        with self._lock:
            subscription = self._get_subscription(subscription_id)
            return {
                'balance': subscription['balance'],
                'owner': subscription['owner'],
                'consumers': sorted(subscription['consumers']),
            }

    def consumer_is_added(self, subscription_id, consumer):
        with self._lock:
            return consumer.address in self._get_subscription(subscription_id)['consumers']

    def _get_subscription(self, subscription_id):
        subscription = self._subscriptions.get(subscription_id)
        if subscription is None:
            raise InvalidSubscription(subscription_id)
        return subscription

    # Requests

    def request_random_words(self, key_hash, subscription_id, request_confirmations,
                             callback_gas_limit, num_words, consumer):
        with self._lock:
            subscription = self._get_subscription(subscription_id)
            if consumer.address not in subscription['consumers']:
                raise InvalidConsumer(subscription_id, consumer.address)

            request_id = self._next_request_id
            self._next_request_id += 1
            self._requests[request_id] = {
                'subscription_id': subscription_id,
                'key_hash': key_hash,
                'request_confirmations': request_confirmations,
                'callback_gas_limit': callback_gas_limit,
                'num_words': num_words,
                'consumer': consumer,
            }

        logger.info(f"📨 Random words requested: request #{request_id} by {consumer.address}")
        self.emitter.emit(RandomWordsRequested(request_id, subscription_id, consumer.address))
        return request_id

    def pending_requests(self):
        """Unfulfilled requests as (request_id, consumer) pairs, oldest first"""
        with self._lock:
            return [(request_id, request['consumer']) for request_id, request in sorted(self._requests.items())]

    def payment_for(self, callback_gas_limit):
        return self.base_fee + self.gas_price_link * callback_gas_limit

    def fulfill_random_words(self, request_id, consumer):
        """Fulfill a request with words derived from its id"""
        return self.fulfill_random_words_with_override(request_id, consumer, [])

    def fulfill_random_words_with_override(self, request_id, consumer, words):
        """
        Deliver random words to a consumer

        Args:
            request_id: Id returned by request_random_words
            consumer: Object exposing fulfill_random_words(request_id, words)
            words: Words to deliver (empty list = derive from request id)

        Returns:
            int: Payment charged to the subscription

        Raises:
            NonexistentRequest: Unknown or already fulfilled request id
            InsufficientBalance: Subscription cannot pay for the callback
            UnrecognizedRequest: The consumer rejected the request, which is dropped
        """
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                raise NonexistentRequest(request_id)

            if not words:
                words = derive_random_words(request_id, request['num_words'])
            elif len(words) != request['num_words']:
                raise ValueError(f"expected {request['num_words']} random words, got {len(words)}")

            subscription_id = request['subscription_id']
            subscription = self._get_subscription(subscription_id)
            payment = self.payment_for(request['callback_gas_limit'])
            if subscription['balance'] < payment:
                raise InsufficientBalance(subscription_id, subscription['balance'], payment)

        # The consumer runs outside the coordinator lock
        try:
            consumer.fulfill_random_words(request_id, list(words))
        except UnrecognizedRequest as e:
            # The consumer will never accept this request
            with self._lock:
                self._requests.pop(request_id, None)
            logger.warning(f"Dropped request #{request_id}: rejected by consumer {consumer.address} ({e})")
            raise
        except Exception as e:
            logger.error(f"❌ Consumer {consumer.address} failed to fulfill request #{request_id}: {e}")
            raise

        with self._lock:
            self._requests.pop(request_id, None)
            subscription['balance'] -= payment

        logger.info(f"✅ Request #{request_id} fulfilled (payment: {payment})")
        self.emitter.emit(RandomWordsFulfilled(request_id, payment, True))
        return payment
