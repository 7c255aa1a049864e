"""
Upload Helpers
Shared validation for image uploads
"""

from fastapi import HTTPException, UploadFile, status

from cvstudio.config import settings


async def read_image_upload(image: UploadFile) -> bytes:
    """Read an uploaded image, enforcing type and size limits"""
    content_type = (image.content_type or "").lower()
    if content_type not in settings.allowed_image_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported image type '{content_type or 'unknown'}'"
        )

    content = await image.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Image exceeds {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MB limit"
        )
    return content
