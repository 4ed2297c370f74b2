"""
Reads and writes of the collection <-> content join table.

Single-row updates report whether a row was actually touched instead of raising,
so callers decide whether a missing association is an error. Nothing here
renormalizes order indices implicitly; use compact_order for that.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.models import CollectionContent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowUpdate:
    """Outcome of a single-row update."""
    rows_affected: int

    @property
    def found(self) -> bool:
        return self.rows_affected > 0


def _ordered(collection_id: int, visible_only: bool = False):
    query = select(CollectionContent).where(CollectionContent.collection_id == collection_id)
    if visible_only:
        query = query.where(CollectionContent.visible.is_(True))
    return (
        query
        .order_by(CollectionContent.order_index.asc(), CollectionContent.id.asc())
        .execution_options(populate_existing=True)
    )


async def list_by_collection(
    db: AsyncSession,
    collection_id: int,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    visible_only: bool = False,
) -> List[CollectionContent]:
    """Associations for a collection, ascending by order_index, optionally paginated."""
    query = _ordered(collection_id, visible_only)
    if limit is not None:
        query = query.limit(limit)
    if offset:
        query = query.offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_by_collection(db: AsyncSession, collection_id: int, visible_only: bool = False) -> int:
    query = select(func.count(CollectionContent.id)).where(CollectionContent.collection_id == collection_id)
    if visible_only:
        query = query.where(CollectionContent.visible.is_(True))
    result = await db.execute(query)
    return result.scalar() or 0


async def max_order_index(db: AsyncSession, collection_id: int) -> Optional[int]:
    result = await db.execute(
        select(func.max(CollectionContent.order_index)).where(CollectionContent.collection_id == collection_id)
    )
    return result.scalar()


async def next_order_index(db: AsyncSession, collection_id: int) -> int:
    """Append position: max + 1, or 0 for an empty collection."""
    current_max = await max_order_index(db, collection_id)
    return 0 if current_max is None else current_max + 1


async def find_association(db: AsyncSession, collection_id: int, content_id: int) -> Optional[CollectionContent]:
    result = await db.execute(
        select(CollectionContent)
        .where(
            CollectionContent.collection_id == collection_id,
            CollectionContent.content_id == content_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_by_order_index(db: AsyncSession, collection_id: int, order_index: int) -> Optional[CollectionContent]:
    # Indices are only unique by intent; take the oldest row if several collide
    result = await db.execute(
        select(CollectionContent)
        .where(
            CollectionContent.collection_id == collection_id,
            CollectionContent.order_index == order_index,
        )
        .order_by(CollectionContent.id.asc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_by_content_ids(db: AsyncSession, content_ids: Sequence[int]) -> List[CollectionContent]:
    """Every collection membership of the given content ids."""
    if not content_ids:
        return []
    result = await db.execute(
        select(CollectionContent).where(CollectionContent.content_id.in_(list(content_ids)))
    )
    return list(result.scalars().all())


async def attach_content(
    db: AsyncSession,
    collection_id: int,
    content_id: int,
    order_index: Optional[int] = None,
    visible: bool = True,
) -> CollectionContent:
    """
    Link content into a collection.

    Appends after the current maximum when no index is given. Attaching a pair
    that is already linked returns the existing row unchanged.
    """
    existing = await find_association(db, collection_id, content_id)
    if existing is not None:
        logger.info(f"Content {content_id} already attached to collection {collection_id} at index {existing.order_index}")
        return existing

    if order_index is None:
        order_index = await next_order_index(db, collection_id)

    association = CollectionContent(
        collection_id=collection_id,
        content_id=content_id,
        order_index=order_index,
        visible=visible,
    )
    db.add(association)
    await db.flush()
    logger.debug(f"Attached content {content_id} to collection {collection_id} at index {order_index}")
    return association


async def set_order_index(db: AsyncSession, association_id: int, new_index: int) -> RowUpdate:
    result = await db.execute(
        update(CollectionContent)
        .where(CollectionContent.id == association_id)
        .values(order_index=new_index)
        .execution_options(synchronize_session=False)
    )
    return RowUpdate(result.rowcount)


async def set_order_index_for_content(
    db: AsyncSession, collection_id: int, content_id: int, new_index: int
) -> RowUpdate:
    result = await db.execute(
        update(CollectionContent)
        .where(
            CollectionContent.collection_id == collection_id,
            CollectionContent.content_id == content_id,
        )
        .values(order_index=new_index)
        .execution_options(synchronize_session=False)
    )
    return RowUpdate(result.rowcount)


async def set_visible(db: AsyncSession, association_id: int, visible: bool) -> RowUpdate:
    result = await db.execute(
        update(CollectionContent)
        .where(CollectionContent.id == association_id)
        .values(visible=visible)
        .execution_options(synchronize_session=False)
    )
    return RowUpdate(result.rowcount)


async def shift_order_indices(
    db: AsyncSession, collection_id: int, start_index: int, end_index: int, delta: int
) -> int:
    """Add delta to every order_index in [start_index, end_index]. Returns rows shifted."""
    result = await db.execute(
        update(CollectionContent)
        .where(
            CollectionContent.collection_id == collection_id,
            CollectionContent.order_index >= start_index,
            CollectionContent.order_index <= end_index,
        )
        .values(order_index=CollectionContent.order_index + delta)
        .execution_options(synchronize_session=False)
    )
    logger.debug(
        f"Shifted {result.rowcount} associations in collection {collection_id} "
        f"[{start_index}, {end_index}] by {delta}"
    )
    return result.rowcount


async def detach_content(db: AsyncSession, collection_id: int, content_ids: Iterable[int]) -> int:
    """Remove the given content from one collection. Content rows are left alone."""
    ids = list(content_ids)
    if not ids:
        return 0
    result = await db.execute(
        delete(CollectionContent)
        .where(
            CollectionContent.collection_id == collection_id,
            CollectionContent.content_id.in_(ids),
        )
        .execution_options(synchronize_session="fetch")
    )
    logger.info(f"Detached {result.rowcount} content item(s) from collection {collection_id}")
    return result.rowcount


async def delete_all_for_collection(db: AsyncSession, collection_id: int) -> int:
    result = await db.execute(
        delete(CollectionContent)
        .where(CollectionContent.collection_id == collection_id)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


async def delete_all_for_content(db: AsyncSession, content_id: int) -> int:
    result = await db.execute(
        delete(CollectionContent)
        .where(CollectionContent.content_id == content_id)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


async def compact_order(db: AsyncSession, collection_id: int) -> int:
    """
    Renormalize a collection to 0..N-1, keeping the current relative order.
    Returns the number of rows whose index changed.
    """
    associations = await list_by_collection(db, collection_id)
    changed = 0
    for position, association in enumerate(associations):
        if association.order_index != position:
            association.order_index = position
            changed += 1
    if changed:
        await db.flush()
        logger.info(f"Compacted order of collection {collection_id}: {changed} index(es) rewritten")
    return changed
