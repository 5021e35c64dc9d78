"""
Chirpline Backend: Media Route
================================

What:  Serves stored tweet media at the URL found in `media_url`.
How:   MediaService.resolve() maps the path into the storage root (rejecting
       traversal and missing files); FileResponse streams it.
"""

import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from app.schemas.common import ErrorResponse
from app.services.media_service import media_service

router = APIRouter(tags=["Media"])


@router.get(
    "/media/{file_path:path}",
    summary="Serve an uploaded tweet image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_media(file_path: str) -> FileResponse:
    full_path = media_service.resolve(file_path)
    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=86400"},
    )
