from __future__ import annotations

import asyncio
import contextvars
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, PlainTextResponse, Response

from gestetner.core.exception_handlers import NOT_FOUND_MESSAGE
from gestetner.core.rate_limit import enforce_rate_limit
from gestetner.core.request_body import declared_content_length, read_body_limited
from gestetner.services.paste import validate_paste
from gestetner.services.paste_store import PasteStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pastes"])

PASTE_MEDIA_TYPE = "text/plain; charset=UTF-8"


@router.post("/", dependencies=[Depends(enforce_rate_limit)])
async def create_paste(request: Request) -> PlainTextResponse:
    """Store the request body as a new paste.

    The body is read up to ``min(Content-Length, max_paste_size)`` bytes.
    Responds 201 with the paste URL, or 206 when the declared length was
    larger than what was kept.

    Raises:
        ValidationAppError: 400 for a non-UTF-8 or empty body.
        RateLimitedAppError: 429 from the rate limit dependency.
        StorageAppError: 500 when the paste cannot be written.
    """
    store: PasteStore = request.app.state.paste_store
    max_size = request.app.state.settings.app.max_paste_size

    declared = declared_content_length(request)
    bound = min(declared, max_size) if declared is not None else max_size

    raw = await read_body_limited(request, bound)
    content = validate_paste(raw)

    # blocking disk work; the copied context keeps the request id on store logs
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    url = await loop.run_in_executor(None, ctx.run, store.create, content)

    truncated = declared is not None and declared > bound
    if truncated:
        logger.info(
            "paste.truncated",
            extra={"declared_length": declared, "stored_size": len(content)},
        )

    return PlainTextResponse(
        f"{url}\n",
        status_code=206 if truncated else 201,
        headers={"Location": url},
    )


@router.get("/{slug}")
async def get_paste(slug: str, request: Request) -> Response:
    """Serve a stored paste as UTF-8 text."""
    store: PasteStore = request.app.state.paste_store

    path = store.resolve(slug)
    if path is None:
        return PlainTextResponse(NOT_FOUND_MESSAGE, status_code=404)

    return FileResponse(path, media_type=PASTE_MEDIA_TYPE)
