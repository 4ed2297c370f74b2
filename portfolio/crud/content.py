"""
Content persistence for the joined-table content hierarchy.

Loads are dispatched per concrete type: look the type up in the base `content`
table, then query the type-specific mapper, which joins base and child tables.
"""
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Type
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.crud import collection_content as collection_content_crud
from portfolio.crud import collections as collections_crud
from portfolio.models import (
    Content,
    ContentCollection,
    ContentGif,
    ContentImage,
    ContentText,
)
from portfolio.types import ContentType

logger = logging.getLogger(__name__)

CONTENT_CLASSES: Dict[ContentType, Type[Content]] = {
    ContentType.IMAGE: ContentImage,
    ContentType.TEXT: ContentText,
    ContentType.GIF: ContentGif,
    ContentType.COLLECTION: ContentCollection,
}


async def find_content_types(db: AsyncSession, ids: Sequence[int]) -> Dict[int, str]:
    """Map of content id -> raw content_type for the ids that exist."""
    if not ids:
        return {}
    result = await db.execute(
        select(Content.id, Content.content_type).where(Content.id.in_(list(ids)))
    )
    return {row.id: row.content_type for row in result.all()}


async def find_all_by_ids(db: AsyncSession, ids: Sequence[int]) -> List[Content]:
    """
    Batch-load fully typed content for a heterogeneous list of ids.

    Issues one type lookup plus one query per concrete type present. Ids that
    do not exist, or whose type is not supported, are dropped. The result is
    not ordered relative to `ids`; correlate by id.
    """
    types_by_id = await find_content_types(db, ids)

    ids_by_type: Dict[ContentType, List[int]] = defaultdict(list)
    for content_id, raw_type in types_by_id.items():
        try:
            ids_by_type[ContentType(raw_type)].append(content_id)
        except ValueError:
            logger.warning(f"Skipping content {content_id} with unsupported type '{raw_type}'")

    results: List[Content] = []
    for content_type, type_ids in ids_by_type.items():
        model = CONTENT_CLASSES[content_type]
        result = await db.execute(select(model).where(model.id.in_(type_ids)))
        results.extend(result.scalars().all())
    return results


async def find_by_id(db: AsyncSession, content_id: int) -> Optional[Content]:
    loaded = await find_all_by_ids(db, [content_id])
    return loaded[0] if loaded else None


async def find_image_by_id(db: AsyncSession, image_id: int) -> Optional[ContentImage]:
    result = await db.execute(select(ContentImage).where(ContentImage.id == image_id))
    return result.scalar_one_or_none()


async def find_images_by_ids(db: AsyncSession, ids: Sequence[int]) -> List[ContentImage]:
    if not ids:
        return []
    result = await db.execute(select(ContentImage).where(ContentImage.id.in_(list(ids))))
    return list(result.scalars().all())


async def list_images(db: AsyncSession, limit: int, offset: int = 0) -> List[ContentImage]:
    """Images newest capture date first; images without a capture date sort last."""
    result = await db.execute(
        select(ContentImage)
        .order_by(
            ContentImage.create_date.is_(None),
            ContentImage.create_date.desc(),
            ContentImage.created_at.desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def count_images(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Content.id)).where(Content.content_type == ContentType.IMAGE.value)
    )
    return result.scalar() or 0


async def exists_by_file_identifier(db: AsyncSession, file_identifier: str) -> bool:
    result = await db.execute(
        select(func.count(ContentImage.id)).where(ContentImage.file_identifier == file_identifier)
    )
    return (result.scalar() or 0) > 0


async def create_image(db: AsyncSession, **fields) -> ContentImage:
    """
    Insert an image. Pass related rows as objects (camera=, lens=, ...) so
    every relationship is populated on the returned instance.
    """
    for relation in ("camera", "lens", "film_type", "location"):
        fields.setdefault(relation, None)
    image = ContentImage(tags=fields.pop("tags", []), people=fields.pop("people", []), **fields)
    db.add(image)
    await db.flush()
    logger.info(f"Created image content {image.id} ({image.title})")
    return image


async def create_text(db: AsyncSession, text_content: str, format_type: Optional[str] = None) -> ContentText:
    text = ContentText(text_content=text_content, format_type=format_type, tags=[])
    db.add(text)
    await db.flush()
    logger.info(f"Created text content {text.id}")
    return text


async def create_gif(db: AsyncSession, **fields) -> ContentGif:
    gif = ContentGif(tags=fields.pop("tags", []), **fields)
    db.add(gif)
    await db.flush()
    logger.info(f"Created gif content {gif.id}")
    return gif


async def find_collection_reference(db: AsyncSession, referenced_collection_id: int) -> Optional[ContentCollection]:
    result = await db.execute(
        select(ContentCollection).where(ContentCollection.referenced_collection_id == referenced_collection_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_collection_reference(db: AsyncSession, referenced_collection_id: int) -> ContentCollection:
    """Reuse the content row that points at a collection, creating it on first use."""
    existing = await find_collection_reference(db, referenced_collection_id)
    if existing is not None:
        return existing
    reference = ContentCollection(referenced_collection_id=referenced_collection_id, tags=[])
    db.add(reference)
    await db.flush()
    logger.info(f"Created collection reference content {reference.id} for collection {referenced_collection_id}")
    return reference


async def delete_content(db: AsyncSession, content: Content) -> None:
    """
    Delete one content item and everything that hangs off it.

    Every collection membership and any collection cover pointing at it are
    removed first. The ORM delete then clears tag and people links and removes
    the child and base rows; for COLLECTION content the child row is the
    content_collection reference.
    """
    content_id = content.id
    await collection_content_crud.delete_all_for_content(db, content_id)
    await collections_crud.clear_cover_references(db, content_id)
    await db.delete(content)
    await db.flush()
    logger.info(f"Deleted content {content_id} ({content.content_type})")
