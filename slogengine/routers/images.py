import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from slogengine import dependencies as deps
from slogengine.services.image_service import ImageService, get_content_type_from_filename

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/blogs/{image_path:path}")
def get_image(image_path: str, service: ImageService = Depends(deps.get_image_service)):
    """
    Serve images stored under the blogs directory
    """
    content_type = get_content_type_from_filename(image_path)
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=404, detail="Image not found")

    path = service.resolve_public_path(image_path)
    if path is None:
        raise HTTPException(status_code=404, detail="Image not found")

    try:
        image_data = path.read_bytes()
    except OSError as e:
        logger.error(f"Error reading image {image_path}: {e}")
        raise HTTPException(status_code=404, detail="Image not found")

    # Set proper content length header
    headers = {
        "Content-Length": str(len(image_data)),
        "Accept-Ranges": "bytes",
    }

    return Response(content=image_data, media_type=content_type, headers=headers)
