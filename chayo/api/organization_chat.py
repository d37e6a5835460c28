"""Organization chat endpoint (JSON or Server-Sent Events)."""

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from chayo.api.deps import get_chat_service
from chayo.core.exceptions import AuthenticationError, OrganizationResolutionError
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import OrganizationChatRequest
from chayo.services.organization_chat import OrganizationChatService

logger = get_logger(__name__)

router = APIRouter()


def _sse(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.post("/organization-chat")
async def organization_chat(
    body: OrganizationChatRequest,
    request: Request,
    service: OrganizationChatService = Depends(get_chat_service),
):
    """
    Run one chat turn for the caller's organization.

    With ``Accept: text/event-stream`` the turn streams ``phase`` events
    followed by a single ``result`` (or ``error``) event.
    """
    if "text/event-stream" in request.headers.get("accept", ""):
        return StreamingResponse(
            _stream_chat(service, body),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    try:
        response = await service.process_chat(body.messages, body.locale)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e
    except OrganizationResolutionError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e

    return response.to_api()


async def _stream_chat(
    service: OrganizationChatService, body: OrganizationChatRequest
) -> AsyncGenerator[str, None]:
    queue: asyncio.Queue = asyncio.Queue()

    def on_progress(phase: str, data: dict[str, Any]) -> None:
        queue.put_nowait(_sse("phase", {"name": phase, **data}))

    async def run() -> None:
        try:
            response = await service.process_chat(body.messages, body.locale, on_progress)
            queue.put_nowait(_sse("result", response.to_api()))
        except AuthenticationError as e:
            queue.put_nowait(_sse("error", {"status": 401, "message": str(e)}))
        except Exception as e:
            logger.error(f"Error in organization chat stream: {e}", exc_info=True)
            queue.put_nowait(_sse("error", {"status": 500, "message": str(e)}))
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        if not task.done():
            task.cancel()
