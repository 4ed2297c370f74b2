"""
Upload pipeline for a single media file.

Images: read EXIF/XMP, downscale and convert to WebP, push web and original
renditions to storage, then insert the IMAGE row with matched or created
camera and lens. GIFs are stored as-is with a WebP first-frame thumbnail.
"""
from datetime import date
from pathlib import Path
from typing import Union
import asyncio
import logging
import re

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.crud import content as content_crud
from portfolio.crud import metadata as metadata_crud
from portfolio.exceptions import ConflictError, ValidationError
from portfolio.models import Camera, ContentGif, ContentImage, Lens
from portfolio.services import storage_service
from portfolio.utils.exif import ImageMetadata, extract_metadata
from portfolio.utils.image_converter import (
    SUPPORTED_IMAGE_FORMATS,
    convert_to_webp,
    detect_format,
    gif_first_frame_thumbnail,
    get_image_size,
)

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

ORIGINAL_CONTENT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


def safe_filename(filename: str) -> str:
    """Basename with anything outside [A-Za-z0-9._-] replaced by underscores."""
    name = Path(filename or "").name
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return cleaned or "upload"


def file_identifier_for(capture_day: date, filename: str) -> str:
    """Duplicate-detection key: YYYY-MM-DD/original_filename."""
    return f"{capture_day.isoformat()}/{filename}"


async def process_upload(
    db: AsyncSession, data: bytes, filename: str
) -> Union[ContentImage, ContentGif]:
    """
    Dispatch on the detected format.

    Raises:
        ValidationError: unreadable or unsupported file
        ConflictError: the same file was already uploaded
    """
    if not data:
        raise ValidationError(f"{filename} is empty")
    source_format = detect_format(data)
    if source_format == "GIF":
        return await process_gif(db, data, filename)
    if source_format not in SUPPORTED_IMAGE_FORMATS:
        raise ValidationError(
            f"Unsupported image format: {source_format or 'unknown'}",
            detail=f"Supported formats: {', '.join(sorted(SUPPORTED_IMAGE_FORMATS | {'GIF'}))}",
        )
    return await process_image(db, data, filename, source_format)


async def process_image(db: AsyncSession, data: bytes, filename: str, source_format: str) -> ContentImage:
    original_name = safe_filename(filename)
    metadata: ImageMetadata = extract_metadata(data)

    capture_day = metadata.capture_date.date() if metadata.capture_date else date.today()
    file_identifier = file_identifier_for(capture_day, original_name)
    if await content_crud.exists_by_file_identifier(db, file_identifier):
        raise ConflictError(f"{original_name} was already uploaded", detail=file_identifier)

    converted = await convert_to_webp(data)

    web_key = storage_service.build_object_key("Image", "Web", f"{Path(original_name).stem}.webp", capture_day)
    original_key = storage_service.build_object_key("Image", "Original", original_name, capture_day)

    web_upload, original_upload = await asyncio.gather(
        storage_service.upload_bytes(converted.data, web_key, converted.content_type),
        storage_service.upload_bytes(data, original_key, ORIGINAL_CONTENT_TYPES[source_format]),
    )

    camera = None
    if metadata.camera:
        camera = await metadata_crud.get_or_create(
            db, Camera, metadata.camera, body_serial_number=metadata.body_serial_number
        )
    lens = None
    if metadata.lens:
        lens = await metadata_crud.get_or_create(
            db, Lens, metadata.lens, lens_serial_number=metadata.lens_serial_number
        )

    image = await content_crud.create_image(
        db,
        title=Path(original_name).stem,
        image_width=converted.width,
        image_height=converted.height,
        iso=metadata.iso,
        author=metadata.author or settings.DEFAULT_AUTHOR,
        rating=metadata.rating,
        f_stop=metadata.f_stop,
        shutter_speed=metadata.shutter_speed,
        focal_length=metadata.focal_length,
        black_and_white=metadata.black_and_white,
        is_film=metadata.is_film,
        create_date=metadata.create_date,
        image_url_web=web_upload["url"],
        image_url_original=original_upload["url"],
        file_identifier=file_identifier,
        camera=camera,
        lens=lens,
    )
    logger.info(
        f"Processed image {image.id} from {original_name}: {converted.width}x{converted.height}, "
        f"camera={metadata.camera}, lens={metadata.lens}"
    )
    return image


async def process_gif(db: AsyncSession, data: bytes, filename: str) -> ContentGif:
    original_name = safe_filename(filename)
    today = date.today()
    width, height = get_image_size(data)
    thumbnail = await gif_first_frame_thumbnail(data)

    gif_key = storage_service.build_object_key("Gif", "Web", original_name, today)
    thumbnail_key = storage_service.build_object_key(
        "Gif", "Thumbnail", f"{Path(original_name).stem}.webp", today
    )
    gif_upload, thumbnail_upload = await asyncio.gather(
        storage_service.upload_bytes(data, gif_key, "image/gif"),
        storage_service.upload_bytes(thumbnail.data, thumbnail_key, thumbnail.content_type),
    )

    gif = await content_crud.create_gif(
        db,
        title=Path(original_name).stem,
        gif_url=gif_upload["url"],
        thumbnail_url=thumbnail_upload["url"],
        width=width,
        height=height,
        author=settings.DEFAULT_AUTHOR,
        create_date=today.isoformat(),
    )
    logger.info(f"Processed gif {gif.id} from {original_name}")
    return gif
