import redis
import uuid
import json
from datetime import datetime

from partstock.core.config import settings

LOW_STOCK_CHANNEL = "low-stock-alerts"
RESERVATION_CHANNEL = "reservation-updates"


class RedisClient:
    def __init__(self):
        self.client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD or None,
            decode_responses=True,
            socket_connect_timeout=2,
        )
        # Unique instance id so subscribers can ignore their own events
        self.instance_id = uuid.uuid4().hex

    def health_check(self) -> bool:
        """Check Redis connectivity"""
        try:
            return self.client.ping()
        except Exception:
            return False

    def publish_event(self, channel: str, payload: dict) -> bool:
        """Publish a JSON payload to a Redis pub/sub channel.

        Adds `origin` and `published_at` to the payload. Returns False when
        broadcasting is disabled or Redis is unreachable.
        """
        if not settings.EVENT_BROADCAST_ENABLED:
            return False
        try:
            payload = dict(payload)
            payload["origin"] = self.instance_id
            payload["published_at"] = datetime.utcnow().isoformat()
            self.client.publish(channel, json.dumps(payload, default=str))
            return True
        except Exception:
            # Best-effort: a broadcast failure never breaks the request
            return False


redis_client = RedisClient()
