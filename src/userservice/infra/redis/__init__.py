"""
Redis infrastructure package.

Contains:
- Redis connection wrapper
- Stream publishers (operation requests / acknowledgment replies)
- Reply listener feeding the RPC bridge
- Loopback echo worker
"""

from src.userservice.infra.redis.client import RedisClient, ensure_consumer_group
from src.userservice.infra.redis.stream_publisher import RedisStreamPublisher, RedisStreamReplyPublisher
from src.userservice.infra.redis.reply_listener import RedisReplyListener
from src.userservice.infra.redis.echo_worker import RedisEchoWorker

__all__ = [
    "RedisClient",
    "ensure_consumer_group",
    "RedisStreamPublisher",
    "RedisStreamReplyPublisher",
    "RedisReplyListener",
    "RedisEchoWorker",
]
