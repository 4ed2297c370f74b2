"""
Collection table queries.
"""
from typing import List, Optional, Sequence, Tuple
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.models import Collection

logger = logging.getLogger(__name__)


async def find_by_id(db: AsyncSession, collection_id: int) -> Optional[Collection]:
    result = await db.execute(select(Collection).where(Collection.id == collection_id))
    return result.scalar_one_or_none()


async def find_by_slug(db: AsyncSession, slug: str) -> Optional[Collection]:
    result = await db.execute(select(Collection).where(Collection.slug == slug))
    return result.scalar_one_or_none()


async def find_by_ids(db: AsyncSession, ids: Sequence[int]) -> List[Collection]:
    if not ids:
        return []
    result = await db.execute(select(Collection).where(Collection.id.in_(list(ids))))
    return list(result.scalars().all())


async def slug_exists(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = select(func.count(Collection.id)).where(Collection.slug == slug)
    if exclude_id is not None:
        query = query.where(Collection.id != exclude_id)
    result = await db.execute(query)
    return (result.scalar() or 0) > 0


async def list_collections(
    db: AsyncSession,
    collection_type: Optional[str] = None,
    visible_only: bool = False,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Collection]:
    """Newest collection_date first, undated collections last, then newest created."""
    query = select(Collection)
    if collection_type:
        query = query.where(Collection.type == collection_type)
    if visible_only:
        query = query.where(Collection.visible.is_(True))
    query = query.order_by(
        Collection.collection_date.is_(None),
        Collection.collection_date.desc(),
        Collection.created_at.desc(),
        Collection.id.desc(),
    )
    if limit is not None:
        query = query.limit(limit)
    if offset:
        query = query.offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_collections(
    db: AsyncSession, collection_type: Optional[str] = None, visible_only: bool = False
) -> int:
    query = select(func.count(Collection.id))
    if collection_type:
        query = query.where(Collection.type == collection_type)
    if visible_only:
        query = query.where(Collection.visible.is_(True))
    result = await db.execute(query)
    return result.scalar() or 0


async def list_id_title_pairs(db: AsyncSession) -> List[Tuple[int, str]]:
    result = await db.execute(select(Collection.id, Collection.title).order_by(Collection.title.asc()))
    return [(row.id, row.title) for row in result.all()]


async def clear_cover_references(db: AsyncSession, content_id: int) -> int:
    result = await db.execute(
        update(Collection)
        .where(Collection.cover_image_id == content_id)
        .values(cover_image_id=None)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


async def delete_collection_row(db: AsyncSession, collection: Collection) -> None:
    """Remove the collection row; the ORM clears its tag and people links."""
    await db.delete(collection)
    await db.flush()
