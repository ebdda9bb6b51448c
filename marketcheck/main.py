import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .schemas import HealthResponse, ResolveResponse, ResponsiveImageUrls
from .probes.http import HttpImageProbe
from .utils import cache
from .utils.images import (
    ImageResolver,
    decode_data_uri,
    generate_responsive_image_urls,
    generate_svg_placeholder,
)

# logging
config.configure_logging()
logger = logging.getLogger('marketcheck')

resolver = ImageResolver(HttpImageProbe())

# placeholders are pure; cache the rendered ones
render_placeholder_cached = cache.ttl_cache(
    ttl=config.PRELOAD_TTL, max_entries=config.CACHE_MAX_ENTRIES)(generate_svg_placeholder)


app = FastAPI(title="marketcheck image service", version=config.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=config.VERSION,
    )


@app.get("/api/images/resolve", response_model=ResolveResponse)
async def resolve_image(url: str = Query(..., min_length=1), index: int = Query(1, ge=0)):
    resolved = await app.state.resolver.resolve(url, index)
    return ResolveResponse(url=url, index=index, resolved=resolved, fallback_used=resolved != url)


@app.get("/api/images/placeholder")
async def placeholder(text: str = "Product Image"):
    decoded = decode_data_uri(render_placeholder_cached(text))
    if decoded is None:
        logger.error("placeholder rendering produced an invalid data URI for %r", text)
        raise HTTPException(status_code=500, detail="Could not render placeholder")
    media_type, body = decoded
    return Response(content=body, media_type=media_type)


@app.get("/api/images/responsive", response_model=ResponsiveImageUrls)
async def responsive(url: str = Query(..., min_length=1)):
    return ResponsiveImageUrls(**generate_responsive_image_urls(url))


app.state.resolver = resolver
