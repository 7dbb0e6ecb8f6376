import asyncio
import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from meeting_relay.services.broadcast_hub import CONNECTED_FRAME, BroadcastHub


def create_stream_router(
    hub: BroadcastHub, cors_origin: Optional[str] = None, poll_interval: float = 1.0
) -> APIRouter:
    router = APIRouter(tags=["stream"])
    logger = logging.getLogger("relay.api.stream")

    @router.get("/stream")
    def stream() -> StreamingResponse:
        async def event_stream():
            # Viewers wait on the event loop, not in a worker thread, so any
            # number of them leaves the threadpool free for webhook handlers.
            loop = asyncio.get_running_loop()
            ready = asyncio.Event()
            connection = hub.subscribe()
            connection.on_ready(lambda: loop.call_soon_threadsafe(ready.set))
            logger.info("Stream SSE connected: id=%s", connection.id)
            try:
                yield CONNECTED_FRAME
                while not connection.closed:
                    ready.clear()
                    frame = connection.read(timeout=0)
                    if frame is not None:
                        yield frame
                        continue
                    try:
                        await asyncio.wait_for(ready.wait(), poll_interval)
                    except asyncio.TimeoutError:
                        pass
            finally:
                # Runs on client disconnect too; unsubscribe is idempotent.
                connection.on_ready(None)
                hub.unsubscribe(connection)

        headers = {
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
        if cors_origin:
            headers["Access-Control-Allow-Origin"] = cors_origin
        return StreamingResponse(event_stream(), media_type="text/event-stream", headers=headers)

    return router
