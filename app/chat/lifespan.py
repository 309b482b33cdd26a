"""
ASGI lifespan handler.

Channels' ProtocolTypeRouter has no lifespan support of its own; this
app is mounted under the "lifespan" key in config/asgi.py so that the
server's shutdown closes the process subscription registry (leaving
every channel-layer group this process joined) before the event loop
stops.
"""

import logging

from chat.registry import shutdown_registry

logger = logging.getLogger(__name__)


class LifespanApp:
    """Minimal ASGI lifespan protocol implementation."""

    def __init__(self, on_shutdown=shutdown_registry):
        self.on_shutdown = on_shutdown

    async def __call__(self, scope, receive, send):
        if scope["type"] != "lifespan":
            raise ValueError(f"LifespanApp cannot handle scope type {scope['type']!r}")

        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.on_shutdown()
                except Exception as e:
                    logger.exception("Chat shutdown hook failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                    return
                logger.info("Chat registry shut down")
                await send({"type": "lifespan.shutdown.complete"})
                return
