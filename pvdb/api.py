"""Scrape endpoint.

GET /metrics runs one collection pass over the app's registry. It is a
sync route, so FastAPI executes it in the threadpool and blocking database
queries never stall the event loop.
"""

from fastapi import APIRouter, Request, Response

from shared.metrics import render_latest

router = APIRouter()


@router.get("/metrics")
def scrape(request: Request) -> Response:
    body, content_type = render_latest(
        request.app.state.registry, request.headers.get("accept")
    )
    return Response(content=body, media_type=content_type)
