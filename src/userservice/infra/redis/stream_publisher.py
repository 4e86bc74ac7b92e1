"""
Redis Stream publishers.

Responsibilities:
- Append operation envelopes to the request stream (client role)
- Append acknowledgment replies to a reply stream (worker role)
- Log publish lifecycle clearly

NOTE:
- This module does NOT wait for replies; correlation lives in the RPC bridge.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from src.userservice.config.settings import settings
from src.userservice.contracts.operation_envelope import OperationEnvelope
from src.userservice.errors import TransportUnavailable
from src.userservice.infra.redis.client import RedisClient
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)


class RedisStreamPublisher:
    """
    Publishes operation envelopes to the request stream.
    """

    def __init__(self, redis_client: RedisClient, stream_name: str) -> None:
        self.redis_client = redis_client
        self.stream_name = stream_name

    async def publish(self, envelope: OperationEnvelope, *, correlation_id: str, reply_to: str) -> str:
        """
        Publish an operation envelope tagged with its correlation id and reply stream.

        Returns:
            stream_id (str): Redis-generated stream entry ID

        Raises:
            TransportUnavailable: Redis could not be reached or rejected the XADD.
        """
        fields: Dict[str, str] = {
            "correlation_id": correlation_id,
            "reply_to": reply_to,
            "body": envelope.to_json(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        logger.info(
            "Publishing operation | stream=%s | correlation_id=%s | operation=%s",
            self.stream_name,
            correlation_id,
            envelope.operation_type.value,
        )

        try:
            client = await self.redis_client.get_client()
            stream_id = await client.xadd(name=self.stream_name, fields=fields)
        except Exception as exc:
            logger.error("Failed to publish operation | correlation_id=%s", correlation_id, exc_info=exc)
            raise TransportUnavailable(str(exc)) from exc

        logger.debug(
            "Operation published | stream=%s | stream_id=%s | correlation_id=%s",
            self.stream_name,
            stream_id,
            correlation_id,
        )
        return stream_id


class RedisStreamReplyPublisher:
    """
    Publishes acknowledgment bodies to the reply stream named by a request.
    """

    def __init__(self, redis_client: RedisClient, maxlen: Optional[int] = None) -> None:
        self.redis_client = redis_client
        self.maxlen = maxlen if maxlen is not None else settings.redis_reply_stream_maxlen

    async def publish_reply(self, *, reply_to: str, correlation_id: str, body: str) -> str:
        client = await self.redis_client.get_client()

        logger.info("Publishing reply | stream=%s | correlation_id=%s", reply_to, correlation_id)

        try:
            stream_id = await client.xadd(
                name=reply_to,
                fields={"correlation_id": correlation_id, "body": body},
                maxlen=self.maxlen,
                approximate=True,
            )
        except Exception as exc:
            logger.error("Failed to publish reply | correlation_id=%s", correlation_id, exc_info=exc)
            raise

        return stream_id
