"""Image proxy for stored featured images.

- GET /api/images/{key} - Stream an object from storage

Used as the public URL when the bucket has no public domain configured.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from blogforge.api.v1.deps import error_response, get_request_id
from blogforge.core.logging import get_logger
from blogforge.integrations.s3 import S3Client, S3Error, S3NotFoundError, get_s3

logger = get_logger(__name__)

router = APIRouter()

CACHE_CONTROL = "public, max-age=31536000, immutable"


@router.get("/{key:path}", summary="Fetch a stored image")
async def get_image(
    request: Request,
    key: str,
    storage: S3Client = Depends(get_s3),
) -> Response:
    request_id = get_request_id(request)
    if not storage.available:
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Image storage is not configured",
            "STORAGE_UNAVAILABLE",
            request_id,
        )
    try:
        body, content_type = await storage.get_object(key)
    except S3NotFoundError:
        return error_response(
            status.HTTP_404_NOT_FOUND, f"Image not found: {key}", "NOT_FOUND", request_id
        )
    except S3Error as e:
        logger.error(
            "Image fetch failed",
            extra={"request_id": request_id, "key": key, "error": str(e)},
        )
        return error_response(
            status.HTTP_502_BAD_GATEWAY, "Image storage request failed", "STORAGE_ERROR", request_id
        )
    return Response(
        content=body, media_type=content_type, headers={"Cache-Control": CACHE_CONTROL}
    )
