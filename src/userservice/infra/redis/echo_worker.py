"""
Loopback echo worker.

Responsibilities:
- Consume operation envelopes from the request stream using a consumer group
- Answer each one with a well-formed acknowledgment on the envelope's reply stream
- ACK inbound entries only after the reply is published

This is the worker role of the shared transport and is independent of the
bridge's client role: it never touches the bridge's correlation map.
It does not mutate any user data; it exists for local deployments and tests
where no real backing worker is running.
"""

from __future__ import annotations

import asyncio
from typing import Dict

from src.userservice.config.settings import settings
from src.userservice.contracts.ack_envelope import AckEnvelope
from src.userservice.contracts.operation_envelope import OperationEnvelope, OperationType
from src.userservice.errors import MalformedEnvelope
from src.userservice.infra.redis.client import RedisClient, ensure_consumer_group
from src.userservice.infra.redis.stream_publisher import RedisStreamReplyPublisher
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)


def build_echo_ack(envelope: OperationEnvelope) -> AckEnvelope:
    """
    Acknowledge an envelope the way the backing worker would on success.
    """
    op = envelope.operation_type
    if op in (OperationType.INSERT, OperationType.UPDATE, OperationType.DELETE):
        user_id = envelope.payload.id if envelope.payload is not None else None
        return AckEnvelope[int](success=True, message="Ok", payload=user_id)
    if op == OperationType.SEARCH:
        return AckEnvelope[list](success=True, message="Ok", payload=[])
    raise ValueError(f"Unsupported operation_type={op!r}")


def build_reply_body(fields: Dict[str, str]) -> str:
    """
    Build the acknowledgment JSON for a raw request entry.

    Undecodable envelopes are answered with success=false so the waiting
    caller gets a business rejection instead of a timeout.
    """
    try:
        envelope = OperationEnvelope.from_json(fields.get("body") or "")
    except MalformedEnvelope as exc:
        logger.warning("Undecodable operation envelope | correlation_id=%s | error=%s", fields.get("correlation_id"), exc)
        return AckEnvelope[int](success=False, message=f"Invalid operation: {exc}").model_dump_json()

    return build_echo_ack(envelope).model_dump_json()


class RedisEchoWorker:
    """
    Consumes operation envelopes and publishes loopback acknowledgments.
    """

    def __init__(
        self,
        redis_client: RedisClient,
        stream_name: str,
        group_name: str,
        consumer_name: str,
        max_concurrency: int = 10,
    ) -> None:
        self.redis_client = redis_client
        self.stream_name = stream_name
        self.group_name = group_name
        self.consumer_name = consumer_name
        self.semaphore = asyncio.Semaphore(max_concurrency)
        self.reply_publisher = RedisStreamReplyPublisher(redis_client)

    async def start(self) -> None:
        """
        Start the worker consume loop (runs until cancelled).
        """
        client = await self.redis_client.get_client()
        await ensure_consumer_group(client, self.stream_name, self.group_name)

        logger.info(
            "Echo worker started | stream=%s | group=%s | consumer=%s",
            self.stream_name,
            self.group_name,
            self.consumer_name,
        )

        while True:
            try:
                await self._consume_once(client)
            except Exception as exc:
                logger.error("Echo worker loop error", exc_info=exc)
                await asyncio.sleep(1)

    async def _consume_once(self, client) -> None:
        response = await client.xreadgroup(
            groupname=self.group_name,
            consumername=self.consumer_name,
            streams={self.stream_name: ">"},
            count=10,
            block=1000,  # ms
        )

        if not response:
            return

        for _, messages in response:
            for stream_id, fields in messages:
                asyncio.create_task(self._process_with_limit(client, stream_id, fields))

    async def _process_with_limit(self, client, stream_id: str, fields: Dict[str, str]) -> None:
        async with self.semaphore:
            await self.process_message(client, stream_id, fields)

    async def process_message(self, client, stream_id: str, fields: Dict[str, str]) -> None:
        """
        Reply to a single request entry, ACK on success.
        """
        correlation_id = (fields.get("correlation_id") or "").strip()
        reply_to = (fields.get("reply_to") or "").strip()

        if not correlation_id or not reply_to:
            logger.warning("Request without reply routing | stream_id=%s | keys=%s", stream_id, sorted(fields.keys()))
            # ACK invalid to avoid poisoning the request stream
            await client.xack(self.stream_name, self.group_name, stream_id)
            return

        try:
            body = build_reply_body(fields)
            await self.reply_publisher.publish_reply(reply_to=reply_to, correlation_id=correlation_id, body=body)
            await client.xack(self.stream_name, self.group_name, stream_id)
            logger.info("Request echoed | stream_id=%s | correlation_id=%s", stream_id, correlation_id)
        except Exception as exc:
            logger.error("Failed to echo request | stream_id=%s", stream_id, exc_info=exc)
            # DO NOT ACK on failure. Message stays pending.


async def run_echo_worker() -> None:
    """
    Script entrypoint for running the echo worker as its own process.
    """
    redis_client = RedisClient()
    worker = RedisEchoWorker(
        redis_client=redis_client,
        stream_name=settings.redis_stream_requests,
        group_name=settings.redis_worker_consumer_group,
        consumer_name=settings.redis_consumer_name,
        max_concurrency=settings.worker_max_concurrency,
    )
    await worker.start()


if __name__ == "__main__":
    asyncio.run(run_echo_worker())
