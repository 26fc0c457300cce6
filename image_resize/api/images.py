"""
Resized image endpoint and URL builder endpoint.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from ..core.creator import ImageCreator
from ..core.image_url import ImageUrlBuilder, ResizeOptions
from ..core.models import FLAG_LETTERS

# mounted under settings.RESIZED_BASE_DIR by create_app
resized_router = APIRouter(tags=["images"])
router = APIRouter(prefix="/images", tags=["images"])

# URL builder options that may be toggled by flag letters
_OPTION_FLAGS = {letter: attr for letter, attr in FLAG_LETTERS}


@resized_router.get("/{path:path}")
async def resized_image(path: str, request: Request):
    creator: ImageCreator = request.app.state.creator
    result = await asyncio.to_thread(creator.create, path)
    return Response(content=result.content, media_type=result.media_type)


@router.get("/url")
async def image_url(
    request: Request,
    src: str = Query(..., description="Image path relative to the site root"),
    method: str = Query("crop", description="Resize method"),
    width: int = Query(..., description="Target width in px"),
    height: Optional[int] = Query(None, description="Target height in px, defaults to width"),
    quality: Optional[int] = Query(None, description="JPEG/WebP quality"),
    bg: Optional[str] = Query(None, description="Background hex color"),
    flags: str = Query("", description="Flag letters, e.g. 'su'"),
    offset_x: int = Query(0, description="Absolute offset, positive moves the crop window right"),
    offset_y: int = Query(0, description="Absolute offset, positive moves the crop window up"),
):
    builder: ImageUrlBuilder = request.app.state.url_builder
    options = ResizeOptions(
        quality=quality,
        bg_color=bg,
        abs_offset=(offset_x, offset_y),
        **{attr: True for letter, attr in _OPTION_FLAGS.items() if letter in flags},
    )
    url = builder.resize(src, method, width, height if height is not None else width, options)
    return {"url": url}
