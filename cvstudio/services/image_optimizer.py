"""
Image Optimization Service
Normalizes uploaded background pages before storage
"""

import logging
from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from cvstudio.errors import InputValidationError

logger = logging.getLogger(__name__)


class ImageOptimizer:
    """Resize + strip metadata, always PNG"""

    MAX_DIMENSION = 2048  # Max width or height

    @staticmethod
    def optimize(image_bytes: bytes) -> Tuple[bytes, str]:
        """
        Downscale to MAX_DIMENSION and re-encode as PNG without metadata

        Returns:
            Tuple of (optimized_bytes, content_type)

        Raises:
            InputValidationError: The bytes are not a readable image
        """
        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise InputValidationError(f"Page image is not readable: {e}")

        has_transparency = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)

        width, height = img.size
        if width > ImageOptimizer.MAX_DIMENSION or height > ImageOptimizer.MAX_DIMENSION:
            img.thumbnail((ImageOptimizer.MAX_DIMENSION, ImageOptimizer.MAX_DIMENSION), Image.Resampling.LANCZOS)

        img = img.convert("RGBA" if has_transparency else "RGB")

        output = BytesIO()
        img.save(output, format="PNG", optimize=True)
        optimized = output.getvalue()
        logger.debug(
            "Optimized page %dx%d -> %dx%d (%s)",
            width, height, img.size[0], img.size[1],
            ImageOptimizer.get_size_reduction(len(image_bytes), len(optimized)),
        )
        return optimized, "image/png"

    @staticmethod
    def get_size_reduction(original_size: int, optimized_size: int) -> str:
        """Get human-readable size reduction"""
        if original_size == 0:
            return "0%"
        reduction = ((original_size - optimized_size) / original_size) * 100
        if reduction > 0:
            return f"-{reduction:.1f}%"
        elif reduction < 0:
            return f"+{abs(reduction):.1f}%"
        return "0%"


# Singleton
image_optimizer = ImageOptimizer()
