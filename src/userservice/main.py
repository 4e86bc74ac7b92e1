"""
FastAPI service entrypoint.

Responsibilities:
- Create FastAPI app
- Register user management routes
- Wire the RPC bridge to Redis (publisher + reply listener)
- Optionally run the loopback echo worker in-process

IMPORTANT:
- This service does NOT mutate user records
- All operations are executed by the backing worker behind Redis Streams
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.userservice.api.user_routes import router as user_router
from src.userservice.config.settings import settings
from src.userservice.infra.redis import (
    RedisClient,
    RedisEchoWorker,
    RedisReplyListener,
    RedisStreamPublisher,
)
from src.userservice.logging.logger import setup_logger
from src.userservice.rpc.bridge import RpcBridge

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    redis_client = RedisClient()
    publisher = RedisStreamPublisher(redis_client=redis_client, stream_name=settings.redis_stream_requests)
    bridge = RpcBridge(
        publisher,
        reply_to=settings.reply_stream,
        timeout_seconds=settings.rpc_timeout_seconds,
    )
    app.state.bridge = bridge

    listener = RedisReplyListener(
        redis_client=redis_client,
        bridge=bridge,
        stream_name=settings.reply_stream,
        group_name=settings.redis_reply_consumer_group,
        consumer_name=settings.redis_consumer_name,
    )
    tasks: List[asyncio.Task] = [asyncio.create_task(listener.start(), name="reply-listener")]

    if settings.echo_worker_enabled:
        echo_worker = RedisEchoWorker(
            redis_client=redis_client,
            stream_name=settings.redis_stream_requests,
            group_name=settings.redis_worker_consumer_group,
            consumer_name=settings.redis_consumer_name,
            max_concurrency=settings.worker_max_concurrency,
        )
        tasks.append(asyncio.create_task(echo_worker.start(), name="echo-worker"))
        logger.warning("Loopback echo worker is ENABLED (local testing only)")

    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await redis_client.close()
        logger.info("Background tasks stopped | in_flight=%s", bridge.in_flight)


def create_app() -> FastAPI:
    """
    FastAPI application factory.
    """
    app = FastAPI(title="User Service Gateway", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(user_router, prefix=settings.api_prefix)

    logger.info(
        "FastAPI user service initialized | env=%s | reply_stream=%s | rpc_timeout_s=%s",
        settings.app_env,
        settings.reply_stream,
        settings.rpc_timeout_seconds,
    )

    return app


# ASGI entrypoint (required by uvicorn)
app = create_app()
