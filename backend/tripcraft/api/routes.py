"""API routes for TripCraft.

Only the image proxy lives here; itinerary generation and CRUD are served
by the outer application, which calls the post-processor directly.
"""

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse

from tripcraft.pipeline import Pipeline

logger = logging.getLogger(__name__)

router = APIRouter()

# Redirects (fallbacks especially) must not be cached so the browser retries.
NO_STORE = "no-store, no-cache, must-revalidate, proxy-revalidate"


def get_pipeline(request: Request) -> Pipeline:
    return request.app.state.pipeline


@router.get("/place-image")
async def place_image(request: Request, query: str = Query("", max_length=200)) -> RedirectResponse:
    """Redirect to an image for ``query``, or to the default stock image."""
    pipeline = get_pipeline(request)
    query = query.strip()
    if not query:
        url = pipeline.resolver.fallback_image()
    else:
        try:
            url = await pipeline.resolver.resolve_image(query)
        except Exception as e:
            logger.error(f"[API] Image proxy failed for '{query}': {type(e).__name__}: {e}")
            url = pipeline.resolver.fallback_image()
    return RedirectResponse(url, status_code=302, headers={"Cache-Control": NO_STORE})
