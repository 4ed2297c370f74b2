"""
Content operations: uploads, text blocks, image metadata edits and deletion.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.crud import collection_content as collection_content_crud
from portfolio.crud import content as content_crud
from portfolio.exceptions import NotFoundError, PortfolioError, UploadError, ValidationError
from portfolio.models import Camera, Content, ContentGif, ContentImage, ContentText, FilmType, Lens, Person, Tag, utcnow
from portfolio.schemas import ImageUpdate
from portfolio.services import collection_service, image_processing, metadata_service, storage_service
from portfolio.types import TextFormType

logger = logging.getLogger(__name__)


@dataclass
class UploadFile:
    filename: str
    data: bytes


@dataclass
class UploadOutcome:
    created: List[Content] = field(default_factory=list)
    associations: list = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class BatchOutcome:
    succeeded: List[int] = field(default_factory=list)
    errors: List[Tuple[int, str]] = field(default_factory=list)


async def upload_images(db: AsyncSession, collection_id: int, files: Sequence[UploadFile]) -> UploadOutcome:
    """
    Process each file and append the results to the collection in input order.

    A failing file is logged and reported in `errors`; the rest still go in.

    Raises:
        NotFoundError: unknown collection
        UploadError: every file failed
    """
    collection = await collection_service.get_collection(db, collection_id)
    outcome = UploadOutcome()

    for upload in files:
        try:
            created = await image_processing.process_upload(db, upload.data, upload.filename)
            outcome.created.append(created)
        except PortfolioError as e:
            logger.warning(f"Skipping {upload.filename}: {e.message}")
            outcome.errors.append((upload.filename, e.message))
        except Exception as e:
            logger.error(f"Failed to process {upload.filename}: {str(e)}", exc_info=True)
            outcome.errors.append((upload.filename, str(e)))

    if files and not outcome.created:
        raise UploadError(
            "All uploads failed",
            detail=[{"filename": name, "error": error} for name, error in outcome.errors],
        )

    outcome.associations = await collection_service.insert_content(
        db, collection.id, [content.id for content in outcome.created]
    )
    await collection_service.refresh_total_content(db, collection)
    await db.flush()
    logger.info(
        f"Uploaded {len(outcome.created)}/{len(files)} file(s) to collection {collection_id}"
    )
    return outcome


async def create_text_content(
    db: AsyncSession,
    collection_id: int,
    text_content: str,
    format_type: Optional[TextFormType] = None,
    order_index: Optional[int] = None,
) -> Tuple[ContentText, object]:
    """Create one text block in a collection; returns the content and its association."""
    collection = await collection_service.get_collection(db, collection_id)
    [content_id] = await collection_service.add_text_blocks(
        db, collection_id, [text_content], insert_at=order_index, format_type=format_type
    )
    await collection_service.refresh_total_content(db, collection)
    await db.flush()
    text = await content_crud.find_by_id(db, content_id)
    association = await collection_content_crud.find_association(db, collection_id, content_id)
    return text, association


async def list_images(db: AsyncSession, page: int = 0, size: int = 50):
    """(images, total) for a zero-based page of the image library."""
    page = max(page, 0)
    size = size if size > 0 else 50
    images = await content_crud.list_images(db, limit=size, offset=page * size)
    total = await content_crud.count_images(db)
    return images, total


async def _check_image_update(db: AsyncSession, image: ContentImage, update: ImageUpdate) -> None:
    """Reject an update before anything is created for it."""
    fields = update.model_fields_set
    for name in ("black_and_white", "is_film"):
        if name in fields and getattr(update, name) is None:
            raise ValidationError(f"Image {image.id}: {name} cannot be null")

    if update.film_type_id is not None:
        await metadata_service.resolve_by_id_or_name(db, FilmType, update.film_type_id, None)
    if update.camera_id is not None:
        await metadata_service.resolve_by_id_or_name(db, Camera, update.camera_id, None)
    if update.lens_id is not None:
        await metadata_service.resolve_by_id_or_name(db, Lens, update.lens_id, None)
    location = update.location
    if location is not None and not location.remove and not location.new_value and location.prev is not None:
        await metadata_service.apply_location_update(db, None, location)
    await metadata_service.check_vocabulary_ids(db, Tag, update.tags)
    await metadata_service.check_vocabulary_ids(db, Person, update.people)


async def _apply_image_update(db: AsyncSession, image: ContentImage, update: ImageUpdate) -> None:
    """
    Validate every referenced id first, then create and assign, so a rejected
    update leaves the image and the vocabulary untouched.
    """
    await _check_image_update(db, image, update)
    fields = update.model_fields_set

    is_film = update.is_film if update.is_film is not None else image.is_film
    film_format = update.film_format if "film_format" in fields else None
    if film_format is not None and not is_film:
        raise ValidationError(f"Image {image.id}: film_format requires is_film=true")

    film_type = image.film_type
    if update.film_type_id is not None:
        film_type = await metadata_service.resolve_by_id_or_name(db, FilmType, update.film_type_id, None)

    camera = image.camera
    if update.camera_id is not None or update.camera_name:
        camera = await metadata_service.resolve_by_id_or_name(db, Camera, update.camera_id, update.camera_name)
    lens = image.lens
    if update.lens_id is not None or update.lens_name:
        lens = await metadata_service.resolve_by_id_or_name(db, Lens, update.lens_id, update.lens_name)

    location = await metadata_service.apply_location_update(db, image.location, update.location)
    tags = await metadata_service.apply_vocabulary_update(db, Tag, image.tags, update.tags)
    people = await metadata_service.apply_vocabulary_update(db, Person, image.people, update.people)

    for name in ("title", "rating", "author", "iso", "f_stop", "shutter_speed", "focal_length",
                 "black_and_white", "create_date"):
        if name in fields:
            setattr(image, name, getattr(update, name))
    if update.is_film is not None:
        image.is_film = update.is_film
        if not update.is_film:
            image.film_format = None
            film_type = None
    if "film_format" in fields:
        image.film_format = film_format.value if film_format else None
    if film_format is not None:
        if film_type is not None and update.iso is None and image.iso is None:
            image.iso = film_type.default_iso

    image.film_type = film_type
    image.camera = camera
    image.lens = lens
    image.location = location
    image.tags = tags
    image.people = people
    # Base-table timestamp does not move on child-only changes
    image.updated_at = utcnow()


async def update_images(db: AsyncSession, updates: Sequence[ImageUpdate]) -> BatchOutcome:
    """Apply per-image metadata edits; a rejected edit is reported and skipped."""
    outcome = BatchOutcome()
    for update in updates:
        image = await content_crud.find_image_by_id(db, update.id)
        if image is None:
            outcome.errors.append((update.id, f"Image {update.id} not found"))
            continue
        try:
            async with db.begin_nested():
                await _apply_image_update(db, image, update)
                await db.flush()
        except ValidationError as e:
            logger.warning(f"Rejected update for image {update.id}: {e.message}")
            outcome.errors.append((update.id, e.message))
            continue
        except IntegrityError as e:
            logger.warning(f"Rejected update for image {update.id}: {e.orig}")
            outcome.errors.append((update.id, f"Image {update.id}: conflicting or missing values"))
            continue
        outcome.succeeded.append(update.id)

    logger.info(f"Updated {len(outcome.succeeded)} image(s); {len(outcome.errors)} rejected")
    return outcome


def _storage_keys(content: Content) -> List[str]:
    if isinstance(content, ContentImage):
        urls = [content.image_url_web, content.image_url_original]
    elif isinstance(content, ContentGif):
        urls = [content.gif_url, content.thumbnail_url]
    else:
        urls = []
    return [key for key in (storage_service.key_from_url(url) for url in urls) if key]


async def delete_contents(db: AsyncSession, content_ids: Sequence[int]) -> BatchOutcome:
    """
    Delete content everywhere it is used. Stored media is removed after the
    rows are gone; a storage failure is logged and does not undo the delete.
    """
    outcome = BatchOutcome()
    affected_collections = set()
    keys: List[str] = []

    loaded = {content.id: content for content in await content_crud.find_all_by_ids(db, content_ids)}
    for content_id in content_ids:
        content = loaded.get(content_id)
        if content is None:
            outcome.errors.append((content_id, f"Content {content_id} not found"))
            continue
        memberships = await collection_content_crud.find_by_content_ids(db, [content_id])
        affected_collections.update(a.collection_id for a in memberships)
        keys.extend(_storage_keys(content))
        await content_crud.delete_content(db, content)
        outcome.succeeded.append(content_id)

    if affected_collections:
        await collection_service.refresh_totals_for(db, affected_collections)

    for key in keys:
        try:
            await storage_service.delete_object(key)
        except Exception as e:
            logger.warning(f"Failed to delete stored object {key}: {str(e)}")

    return outcome


async def get_content(db: AsyncSession, content_id: int) -> Content:
    content = await content_crud.find_by_id(db, content_id)
    if content is None:
        raise NotFoundError(f"Content {content_id} not found")
    return content
