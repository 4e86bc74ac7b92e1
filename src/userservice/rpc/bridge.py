"""
RPC bridge over an asynchronous broker.

Responsibilities:
- Issue a fresh correlation id per request
- Register a single-shot waiter (asyncio.Future) under that id
- Publish the operation envelope with the id and this instance's reply stream
- Wait for the matching reply or the timeout, whichever comes first
- Hand inbound replies to the right waiter (`deliver`)

Exactly one of {fulfilled, timed out, publish failed, cancelled} happens per correlation id.
The pending map is only touched between awaits, so insert and pop are atomic
with respect to the reply listener and the timeout.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from src.userservice.contracts.operation_envelope import OperationEnvelope
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)


class OperationPublisher(Protocol):
    async def publish(self, envelope: OperationEnvelope, *, correlation_id: str, reply_to: str) -> str: ...


@dataclass
class BridgeStats:
    issued: int = 0
    fulfilled: int = 0
    timed_out: int = 0
    publish_failed: int = 0
    late_replies: int = 0
    cancelled: int = 0


class RpcBridge:
    """
    Turns publish + correlated reply into a request/response call.

    `send` returns the raw reply body, or None when there is no reply
    (publish failure or timeout).
    """

    def __init__(self, publisher: OperationPublisher, *, reply_to: str, timeout_seconds: float) -> None:
        self.publisher = publisher
        self.reply_to = reply_to
        self.timeout_seconds = timeout_seconds
        self.stats = BridgeStats()
        self._pending: Dict[str, asyncio.Future] = {}

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def _new_correlation_id(self) -> str:
        correlation_id = uuid.uuid4().hex
        while correlation_id in self._pending:
            correlation_id = uuid.uuid4().hex
        return correlation_id

    async def send(self, envelope: OperationEnvelope) -> Optional[str]:
        correlation_id = self._new_correlation_id()
        waiter: asyncio.Future = asyncio.get_running_loop().create_future()

        # Registered before publishing: the reply may be consumed while the XADD is awaited.
        self._pending[correlation_id] = waiter
        self.stats.issued += 1

        try:
            await self.publisher.publish(envelope, correlation_id=correlation_id, reply_to=self.reply_to)
        except asyncio.CancelledError:
            self._abandon(correlation_id, waiter)
            raise
        except Exception as exc:
            self._pending.pop(correlation_id, None)
            waiter.cancel()
            self.stats.publish_failed += 1
            logger.error(
                "Transport unavailable | correlation_id=%s | operation=%s | error=%s",
                correlation_id,
                envelope.operation_type.value,
                exc,
            )
            return None

        try:
            await asyncio.wait({waiter}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            self._abandon(correlation_id, waiter)
            raise
        finally:
            self._pending.pop(correlation_id, None)

        if waiter.done():
            self.stats.fulfilled += 1
            logger.info("Reply correlated | correlation_id=%s", correlation_id)
            return waiter.result()

        waiter.cancel()
        self.stats.timed_out += 1
        logger.warning(
            "Reply timeout | correlation_id=%s | operation=%s | timeout_s=%.3f",
            correlation_id,
            envelope.operation_type.value,
            self.timeout_seconds,
        )
        return None

    def _abandon(self, correlation_id: str, waiter: asyncio.Future) -> None:
        # caller task cancelled; a reply arriving later counts as late
        self._pending.pop(correlation_id, None)
        waiter.cancel()
        self.stats.cancelled += 1
        logger.warning("Request abandoned by caller | correlation_id=%s", correlation_id)

    def deliver(self, correlation_id: str, body: str) -> bool:
        """
        Fulfil the waiter registered under `correlation_id`.

        Returns False when no live waiter exists (unknown id, or the request
        already timed out); the reply is discarded.
        """
        waiter = self._pending.pop(correlation_id, None)
        if waiter is None or waiter.done():
            self.stats.late_replies += 1
            logger.warning("Discarding uncorrelated or late reply | correlation_id=%s", correlation_id)
            return False

        waiter.set_result(body)
        return True
