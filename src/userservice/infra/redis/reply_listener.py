"""
Redis Stream reply listener.

Responsibilities:
- Consume this instance's reply stream using a consumer group
- Read the correlation id and acknowledgment body of each entry
- Hand the body to the RPC bridge, which wakes the matching waiter
- ACK and delete every entry (late or uncorrelated replies are dropped, not retried)
"""

from __future__ import annotations

import asyncio
from typing import Dict

from src.userservice.infra.redis.client import RedisClient, ensure_consumer_group
from src.userservice.logging.logger import setup_logger
from src.userservice.rpc.bridge import RpcBridge

logger = setup_logger(__name__)


class RedisReplyListener:
    """
    Single inbound entry point feeding replies to the bridge.
    """

    def __init__(
        self,
        redis_client: RedisClient,
        bridge: RpcBridge,
        stream_name: str,
        group_name: str,
        consumer_name: str,
    ) -> None:
        self.redis_client = redis_client
        self.bridge = bridge
        self.stream_name = stream_name
        self.group_name = group_name
        self.consumer_name = consumer_name

    async def start(self) -> None:
        """
        Start the listen loop (runs until cancelled).
        """
        client = await self.redis_client.get_client()
        await ensure_consumer_group(client, self.stream_name, self.group_name)

        logger.info(
            "Reply listener started | stream=%s | group=%s | consumer=%s",
            self.stream_name,
            self.group_name,
            self.consumer_name,
        )

        while True:
            try:
                await self._consume_once(client)
            except Exception as exc:
                logger.error("Reply listener loop error", exc_info=exc)
                await asyncio.sleep(1)

    async def _consume_once(self, client) -> None:
        response = await client.xreadgroup(
            groupname=self.group_name,
            consumername=self.consumer_name,
            streams={self.stream_name: ">"},
            count=50,
            block=1000,  # ms
        )

        if not response:
            return

        for _, messages in response:
            for stream_id, fields in messages:
                self.handle_reply(stream_id, fields)
                await client.xack(self.stream_name, self.group_name, stream_id)
                await client.xdel(self.stream_name, stream_id)

    def handle_reply(self, stream_id: str, fields: Dict[str, str]) -> bool:
        """
        Deliver one reply entry to the bridge. Returns True if a waiter was fulfilled.
        """
        correlation_id = (fields.get("correlation_id") or "").strip()
        body = fields.get("body")

        if not correlation_id or body is None:
            logger.warning("Invalid reply entry | stream_id=%s | keys=%s", stream_id, sorted(fields.keys()))
            return False

        logger.debug("Reply received | stream_id=%s | correlation_id=%s", stream_id, correlation_id)
        return self.bridge.deliver(correlation_id, body)
