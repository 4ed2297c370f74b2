"""
Image conversion utility: downscale and convert uploads to WebP before storage.
"""
import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from portfolio.config import settings
from portfolio.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_WEBP_METHOD = 6    # Compression method (0-6, higher = better compression but slower)
THUMBNAIL_DIMENSION = 800

SUPPORTED_IMAGE_FORMATS = {"JPEG", "PNG", "WEBP"}


@dataclass
class ConvertedImage:
    data: bytes
    width: int
    height: int
    content_type: str = "image/webp"


def detect_format(image_bytes: bytes) -> str:
    """
    Pillow format name of the given bytes ('JPEG', 'PNG', 'GIF', ...).

    Raises:
        ValidationError: if the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.format or ""
    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        raise ValidationError("Unreadable image file", detail=str(e))


def fit_within(width: int, height: int, max_dimension: Optional[int]):
    """Dimensions scaled so the longest side is at most max_dimension."""
    if not max_dimension or (width <= max_dimension and height <= max_dimension):
        return width, height
    if width >= height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


def _prepare_mode(image: Image.Image) -> Image.Image:
    # WebP keeps alpha, so only palette and exotic modes need converting
    if image.mode == 'P':
        return image.convert('RGBA')
    if image.mode not in ('RGB', 'RGBA', 'LA'):
        if image.mode not in ('CMYK', 'L'):
            logger.warning(f"Unusual image mode '{image.mode}', converting to RGB")
        return image.convert('RGB')
    return image


def _encode_webp(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    save_kwargs = {
        'format': 'WEBP',
        'quality': quality,
        'method': DEFAULT_WEBP_METHOD,
    }
    if quality == 100:
        save_kwargs['lossless'] = True
    image.save(buffer, **save_kwargs)
    return buffer.getvalue()


def _resize_and_encode(image_bytes: bytes, quality: int, max_dimension: Optional[int]):
    # Pillow work runs off the event loop
    webp_bytes, new_width, new_height = await asyncio.to_thread(
        _resize_and_encode, image_bytes, quality, max_dimension
    )

    original_size = len(image_bytes)
    converted_size = len(webp_bytes)
    reduction = ((original_size - converted_size) / original_size) * 100 if original_size else 0.0
    logger.info(
        f"Converted {source_format} to WebP: "
        f"{original_size:,} bytes → {converted_size:,} bytes "
        f"({reduction:.1f}% reduction, quality={quality})"
    )

    return ConvertedImage(data=webp_bytes, width=new_width, height=new_height)


async def gif_first_frame_thumbnail(
    gif_bytes: bytes,
    quality: Optional[int] = None,
    max_dimension: int = THUMBNAIL_DIMENSION,
) -> ConvertedImage:
    """
    WebP still of a GIF's first frame, scaled to max_dimension.

    Raises:
        ValidationError: if the bytes are not a GIF
    """
    quality = quality if quality is not None else settings.WEBP_QUALITY
    if detect_format(gif_bytes) != "GIF":
        raise ValidationError("Expected a GIF file")

    data, width, height = await asyncio.to_thread(_first_frame_webp, gif_bytes, quality, max_dimension)

    return ConvertedImage(data=data, width=width, height=height)


def get_image_size(image_bytes: bytes):
    """(width, height) of an image, or (None, None) if Pillow cannot read it."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Error reading image size: {str(e)}")
        return None, None
