"""
Redis Publisher for Raffle Events
Publishes raffle notifications to a Redis channel for dashboards and other observers
"""

import json
import logging
import os

import redis

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = 'raffle:events'


class RaffleRedisPublisher:
    def __init__(self, redis_url=None, channel=None):
        self.channel = channel or os.getenv('REDIS_EVENTS_CHANNEL', DEFAULT_CHANNEL)
        redis_url = redis_url or os.getenv('REDIS_URL')
        self.client = None
        if redis_url:
            if '://' not in redis_url:
                redis_url = f'redis://{redis_url}'
            try:
                self.client = redis.from_url(redis_url, decode_responses=True)
                self.client.ping()
                self.enabled = True
                logger.info("✅ Raffle Redis publisher connected")
            except redis.RedisError as e:
                logger.warning(f"⚠️ Redis unavailable for raffle publisher: {e}")
                self.enabled = False
        else:
            logger.debug("REDIS_URL not set, raffle events will not be published")
            self.enabled = False

    def publish(self, action, data=None, channel=None):
        """Publish an event to a Redis channel"""
        if not self.enabled:
            return False

        channel = channel or self.channel
        try:
            message = json.dumps({
                'action': action,
                'data': data or {}
            })
            self.client.publish(channel, message)
            logger.debug(f"📤 Published to {channel}: {action}")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Failed to publish to {channel}: {e}")
            return False

    def publish_raffle_event(self, event):
        """Publish a raffle event (EnteredRaffle, RequestedRaffleWinner, WinnerPicked, ...)"""
        return self.publish(event.name, event.to_dict())


# Global instance
raffle_redis_publisher = RaffleRedisPublisher()
