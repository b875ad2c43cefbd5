"""WebSocket plumbing for live snapshot streams"""
import asyncio
import logging
from typing import Any, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from app.services.change_feed import Subscription

logger = logging.getLogger(__name__)


async def stream_snapshots(
    websocket: WebSocket,
    subscription: Subscription,
    on_event: Callable[[str, Any], Awaitable[Any]],
):
    """
    Forward feed events to the socket until the client disconnects.

    ``on_event`` turns a (topic, snapshot) pair into the message to send, or
    None to send nothing. Incoming client messages are ignored; reading them
    is how a disconnect is noticed while the feed is quiet.
    """

    async def sender():
        async for topic, snapshot in subscription:
            message = await on_event(topic, snapshot)
            if message is not None:
                await websocket.send_json(jsonable_encoder(message))

    async def receiver():
        while True:
            await websocket.receive_text()

    tasks = [asyncio.create_task(sender()), asyncio.create_task(receiver())]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning(f"Live stream closed with error: {exc}")
    finally:
        for task in tasks:
            task.cancel()
        subscription.close()
