"""
Collection operations: creation, paging, updates, ordering and deletion.

Order indices within a collection are kept dense by the insert paths (append,
or shift-then-insert). Removal leaves gaps unless the caller asks for a
compaction, and reorder operations are applied exactly as given.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.crud import collection_content as collection_content_crud
from portfolio.crud import collections as collections_crud
from portfolio.crud import content as content_crud
from portfolio.exceptions import NotFoundError, ValidationError
from portfolio.models import Collection, CollectionContent, ContentImage, Person, Tag, utcnow
from portfolio.schemas import (
    ChildCollectionsUpdate,
    CollectionCreate,
    CollectionUpdate,
    ReorderOperation,
)
from portfolio.services import metadata_service
from portfolio.services.content_mapping import resolve_cover_image
from portfolio.types import CollectionType, DisplayMode, TextFormType
from portfolio.utils.auth import hash_password, verify_password
from portfolio.utils.slug import slugify

logger = logging.getLogger(__name__)


@dataclass
class CollectionPage:
    collection: Collection
    cover: Optional[ContentImage]
    associations: List[CollectionContent]
    page: int
    size: int
    total_items: int

    @property
    def total_pages(self) -> int:
        if not self.total_items or not self.size:
            return 0
        return -(-self.total_items // self.size)


async def get_collection(db: AsyncSession, collection_id: int) -> Collection:
    collection = await collections_crud.find_by_id(db, collection_id)
    if collection is None:
        raise NotFoundError(f"Collection {collection_id} not found")
    return collection


async def get_collection_by_slug(db: AsyncSession, slug: str) -> Collection:
    collection = await collections_crud.find_by_slug(db, slug)
    if collection is None:
        raise NotFoundError(f"Collection '{slug}' not found")
    return collection


async def get_public_collection(db: AsyncSession, slug: str) -> Collection:
    """Like get_collection_by_slug, but hidden collections are not found."""
    collection = await get_collection_by_slug(db, slug)
    if not collection.visible:
        raise NotFoundError(f"Collection '{slug}' not found")
    return collection


async def generate_unique_slug(db: AsyncSession, title: str, exclude_id: Optional[int] = None) -> str:
    """Slug from the title, suffixed -2, -3, ... until unused."""
    base = slugify(title)
    candidate = base
    suffix = 2
    while await collections_crud.slug_exists(db, candidate, exclude_id=exclude_id):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def default_display_mode(collection_type: CollectionType) -> DisplayMode:
    return DisplayMode.CHRONOLOGICAL if collection_type == CollectionType.BLOG else DisplayMode.ORDERED


async def validate_cover_image(db: AsyncSession, cover_image_id: int) -> ContentImage:
    """
    Raises:
        ValidationError: if the id is missing or not IMAGE content
    """
    content = await content_crud.find_by_id(db, cover_image_id)
    if content is None:
        raise ValidationError(f"Cover image {cover_image_id} does not exist")
    if not isinstance(content, ContentImage):
        raise ValidationError(
            f"Cover image {cover_image_id} must reference IMAGE content, got {content.content_type}"
        )
    return content


def _check_password_allowed(collection_type: CollectionType) -> None:
    if collection_type != CollectionType.CLIENT_GALLERY:
        raise ValidationError("Only client galleries can be password protected")


async def create_collection(db: AsyncSession, request: CollectionCreate) -> Collection:
    collection_type = request.type
    if request.password:
        _check_password_allowed(collection_type)
    if request.cover_image_id:
        await validate_cover_image(db, request.cover_image_id)

    collection = Collection(
        type=collection_type.value,
        title=request.title.strip(),
        slug=await generate_unique_slug(db, request.title),
        description=request.description,
        collection_date=request.collection_date,
        visible=request.visible,
        display_mode=(request.display_mode or default_display_mode(collection_type)).value,
        cover_image_id=request.cover_image_id or None,
        content_per_page=request.content_per_page or settings.DEFAULT_CONTENT_PER_PAGE,
        total_content=0,
        password_hash=hash_password(request.password) if request.password else None,
        password_protected=bool(request.password),
        location=await metadata_service.apply_location_update(db, None, request.location),
        tags=[],
        people=[],
    )
    db.add(collection)
    await db.flush()
    logger.info(f"Created collection {collection.id} '{collection.slug}' ({collection_type.value})")
    return collection


async def list_collections(
    db: AsyncSession,
    collection_type: Optional[CollectionType] = None,
    visible_only: bool = False,
    limit: int = 50,
    offset: int = 0,
):
    """(collections, total_count) for one page of the collection listing."""
    type_value = collection_type.value if collection_type else None
    collections = await collections_crud.list_collections(
        db, type_value, visible_only=visible_only, limit=limit, offset=offset
    )
    total = await collections_crud.count_collections(db, type_value, visible_only=visible_only)
    return collections, total


async def get_collection_page(
    db: AsyncSession,
    slug: str,
    page: int = 0,
    size: int = 0,
    include_hidden: bool = False,
) -> CollectionPage:
    """
    One page of a collection's content in order.

    Public reads (include_hidden=False) 404 on hidden collections and skip
    hidden associations. Pages are zero-based; size <= 0 uses content_per_page.
    """
    collection = await get_collection_by_slug(db, slug)
    return await _page_for(db, collection, page, size, include_hidden)


async def get_collection_page_by_id(
    db: AsyncSession, collection_id: int, page: int = 0, size: int = 0
) -> CollectionPage:
    collection = await get_collection(db, collection_id)
    return await _page_for(db, collection, page, size, include_hidden=True)


async def _page_for(
    db: AsyncSession, collection: Collection, page: int, size: int, include_hidden: bool
) -> CollectionPage:
    if not include_hidden and not collection.visible:
        raise NotFoundError(f"Collection '{collection.slug}' not found")

    page = max(page, 0)
    if size <= 0:
        size = collection.content_per_page or settings.DEFAULT_CONTENT_PER_PAGE

    visible_only = not include_hidden
    total_items = await collection_content_crud.count_by_collection(db, collection.id, visible_only=visible_only)
    associations = await collection_content_crud.list_by_collection(
        db, collection.id, limit=size, offset=page * size, visible_only=visible_only
    )
    cover = await resolve_cover_image(db, collection)

    return CollectionPage(
        collection=collection,
        cover=cover,
        associations=associations,
        page=page,
        size=size,
        total_items=total_items,
    )


async def refresh_total_content(db: AsyncSession, collection: Collection) -> int:
    collection.total_content = await collection_content_crud.count_by_collection(db, collection.id)
    return collection.total_content


async def refresh_totals_for(db: AsyncSession, collection_ids: Iterable[int]) -> None:
    for collection in await collections_crud.find_by_ids(db, sorted(set(collection_ids))):
        await refresh_total_content(db, collection)
    await db.flush()


async def insert_content(
    db: AsyncSession,
    collection_id: int,
    content_ids: Sequence[int],
    insert_at: Optional[int] = None,
    visible: bool = True,
) -> List[CollectionContent]:
    """
    Link content into a collection at a position, or at the end.

    With insert_at, the block [insert_at, max] is shifted by len(content_ids)
    first so the sequence stays dense. A position past the end appends.
    Content already in the collection must be filtered out by the caller.
    """
    if not content_ids:
        return []

    if insert_at is not None:
        current_max = await collection_content_crud.max_order_index(db, collection_id)
        if current_max is None or insert_at > current_max:
            insert_at = None
        else:
            await collection_content_crud.shift_order_indices(
                db, collection_id, insert_at, current_max, len(content_ids)
            )

    associations = []
    for position, content_id in enumerate(content_ids):
        order_index = None if insert_at is None else insert_at + position
        associations.append(
            await collection_content_crud.attach_content(db, collection_id, content_id, order_index, visible)
        )
    return associations


async def add_text_blocks(
    db: AsyncSession,
    collection_id: int,
    texts: Sequence[str],
    insert_at: Optional[int] = None,
    format_type: Optional[TextFormType] = None,
) -> List[int]:
    """
    Create TEXT content and place it in the collection.
    Returns the new ids in input order; placeholder -k refers to the k-th id.
    """
    created_ids = []
    for text in texts:
        if not text or not text.strip():
            raise ValidationError("Text blocks cannot be empty")
        created = await content_crud.create_text(db, text, format_type.value if format_type else None)
        created_ids.append(created.id)

    await insert_content(db, collection_id, created_ids, insert_at)
    logger.info(f"Added {len(created_ids)} text block(s) to collection {collection_id}")
    return created_ids


def resolve_placeholder(content_id: int, placeholder_ids: Sequence[int]) -> int:
    """Positive ids pass through; -k maps to the k-th id created in this request."""
    if content_id > 0:
        return content_id
    position = -content_id
    if position < 1 or position > len(placeholder_ids):
        raise ValidationError(
            f"Invalid placeholder {content_id}: {len(placeholder_ids)} item(s) were created in this request"
        )
    return placeholder_ids[position - 1]


async def reorder_content(
    db: AsyncSession,
    collection_id: int,
    operations: Sequence[ReorderOperation],
    placeholder_ids: Sequence[int] = (),
) -> int:
    """
    Apply explicit order placements.

    Every reference is resolved against the current state before any index is
    written, then each placement is an independent single-row update. The
    result is exactly what the caller specified; density is not enforced.

    Raises:
        ValidationError: for unresolvable placeholders, unknown old indices or
            content that is not in the collection
    """
    resolved = []
    for operation in operations:
        if operation.content_id is not None:
            content_id = resolve_placeholder(operation.content_id, placeholder_ids)
        else:
            association = await collection_content_crud.find_by_order_index(
                db, collection_id, operation.old_order_index
            )
            if association is None:
                raise ValidationError(
                    f"No content at order index {operation.old_order_index} in collection {collection_id}"
                )
            content_id = association.content_id
        resolved.append((content_id, operation.new_order_index))

    for content_id, new_index in resolved:
        outcome = await collection_content_crud.set_order_index_for_content(
            db, collection_id, content_id, new_index
        )
        if not outcome.found:
            raise ValidationError(f"Content {content_id} is not in collection {collection_id}")

    logger.info(f"Reordered {len(resolved)} item(s) in collection {collection_id}")
    return len(resolved)


async def compact_order(db: AsyncSession, collection_id: int) -> int:
    await get_collection(db, collection_id)
    return await collection_content_crud.compact_order(db, collection_id)


async def attach_existing_content(
    db: AsyncSession,
    collection_id: int,
    content_ids: Sequence[int],
    insert_at: Optional[int] = None,
    visible: bool = True,
) -> List[CollectionContent]:
    """
    Link existing content into a collection. Content already present is left
    where it is.

    Raises:
        NotFoundError: unknown collection
        ValidationError: unknown content ids, or a collection nested in itself
    """
    collection = await get_collection(db, collection_id)
    types_by_id = await content_crud.find_content_types(db, content_ids)
    missing = [cid for cid in content_ids if cid not in types_by_id]
    if missing:
        raise ValidationError(f"Unknown content id(s): {missing}")

    self_reference = await content_crud.find_collection_reference(db, collection_id)
    if self_reference is not None and self_reference.id in content_ids:
        raise ValidationError("A collection cannot contain itself")

    new_ids = []
    for content_id in content_ids:
        if await collection_content_crud.find_association(db, collection_id, content_id) is None:
            new_ids.append(content_id)

    associations = await insert_content(db, collection_id, new_ids, insert_at, visible)
    await refresh_total_content(db, collection)
    await db.flush()
    return associations


async def detach_content(
    db: AsyncSession, collection_id: int, content_ids: Sequence[int], compact: bool = False
) -> int:
    """Unlink content from one collection; the content itself is kept."""
    collection = await get_collection(db, collection_id)
    removed = await collection_content_crud.detach_content(db, collection_id, content_ids)
    if compact:
        await collection_content_crud.compact_order(db, collection_id)
    await refresh_total_content(db, collection)
    await db.flush()
    return removed


async def update_association(
    db: AsyncSession,
    collection_id: int,
    content_id: int,
    visible: Optional[bool] = None,
    order_index: Optional[int] = None,
) -> CollectionContent:
    """
    Change visibility and/or order of one item within one collection.

    Raises:
        NotFoundError: if the content is not in the collection
    """
    association = await collection_content_crud.find_association(db, collection_id, content_id)
    if association is None:
        raise NotFoundError(f"Content {content_id} is not in collection {collection_id}")

    if visible is not None:
        outcome = await collection_content_crud.set_visible(db, association.id, visible)
        if not outcome.found:
            raise NotFoundError(f"Association {association.id} no longer exists")
    if order_index is not None:
        outcome = await collection_content_crud.set_order_index(db, association.id, order_index)
        if not outcome.found:
            raise NotFoundError(f"Association {association.id} no longer exists")

    return await collection_content_crud.find_association(db, collection_id, content_id)


async def _apply_child_collections(
    db: AsyncSession, collection: Collection, update: ChildCollectionsUpdate
) -> None:
    """Nest, adjust or unnest other collections inside this one."""
    if update.remove:
        reference_ids = []
        for child_id in update.remove:
            reference = await content_crud.find_collection_reference(db, child_id)
            if reference is not None:
                reference_ids.append(reference.id)
        await collection_content_crud.detach_content(db, collection.id, reference_ids)

    for child in update.new_values or []:
        if child.collection_id == collection.id:
            raise ValidationError("A collection cannot contain itself")
        await get_collection(db, child.collection_id)
        reference = await content_crud.get_or_create_collection_reference(db, child.collection_id)
        association = await collection_content_crud.find_association(db, collection.id, reference.id)
        if association is not None:
            if child.order_index is not None:
                await collection_content_crud.set_order_index(db, association.id, child.order_index)
            if child.visible is not None:
                await collection_content_crud.set_visible(db, association.id, child.visible)
            continue
        # Newly nested collections start hidden
        visible = False if child.visible is None else child.visible
        await insert_content(db, collection.id, [reference.id], child.order_index, visible)

    for child in update.prev or []:
        reference = await content_crud.find_collection_reference(db, child.collection_id)
        if reference is None:
            raise ValidationError(f"Collection {child.collection_id} is not nested in collection {collection.id}")
        association = await collection_content_crud.find_association(db, collection.id, reference.id)
        if association is None:
            raise ValidationError(f"Collection {child.collection_id} is not nested in collection {collection.id}")
        if child.visible is not None:
            await collection_content_crud.set_visible(db, association.id, child.visible)
        if child.order_index is not None:
            await collection_content_crud.set_order_index(db, association.id, child.order_index)


async def update_collection(db: AsyncSession, collection_id: int, request: CollectionUpdate) -> Collection:
    """
    Partial update. Text blocks are created before reorder operations run so
    that placeholders (-1, -2, ...) resolve to them.
    """
    collection = await get_collection(db, collection_id)
    fields = request.model_fields_set

    if request.type is not None:
        collection.type = request.type.value
    if request.title is not None:
        collection.title = request.title.strip()
    if "description" in fields:
        collection.description = request.description
    if "collection_date" in fields:
        collection.collection_date = request.collection_date
    if request.visible is not None:
        collection.visible = request.visible
    if request.display_mode is not None:
        collection.display_mode = request.display_mode.value
    if request.content_per_page is not None:
        collection.content_per_page = request.content_per_page

    if request.clear_cover_image or request.cover_image_id == 0:
        collection.cover_image_id = None
    elif request.cover_image_id is not None:
        await validate_cover_image(db, request.cover_image_id)
        collection.cover_image_id = request.cover_image_id

    if request.clear_password:
        collection.password_hash = None
        collection.password_protected = False
    elif request.password:
        _check_password_allowed(CollectionType.parse(collection.type))
        collection.password_hash = hash_password(request.password)
        collection.password_protected = True
    if collection.password_protected and CollectionType.parse(collection.type) != CollectionType.CLIENT_GALLERY:
        logger.info(f"Clearing password on collection {collection.id}: type is now {collection.type}")
        collection.password_hash = None
        collection.password_protected = False

    collection.location = await metadata_service.apply_location_update(db, collection.location, request.location)
    collection.tags = await metadata_service.apply_vocabulary_update(db, Tag, collection.tags, request.tags)
    collection.people = await metadata_service.apply_vocabulary_update(db, Person, collection.people, request.people)
    await db.flush()

    if request.collections is not None:
        await _apply_child_collections(db, collection, request.collections)

    placeholder_ids: List[int] = []
    if request.new_text_blocks:
        placeholder_ids = await add_text_blocks(
            db,
            collection.id,
            request.new_text_blocks,
            insert_at=request.new_text_blocks_insert_at,
            format_type=request.text_format,
        )

    if request.reorder_operations:
        await reorder_content(db, collection.id, request.reorder_operations, placeholder_ids)

    await refresh_total_content(db, collection)
    collection.updated_at = utcnow()
    await db.flush()
    logger.info(f"Updated collection {collection.id} '{collection.slug}'")
    return collection


async def delete_collection(db: AsyncSession, collection_id: int) -> None:
    """
    Delete a collection and its memberships. Content it held is kept.
    If it was nested in other collections, its reference content is deleted too
    and those parents' totals are recalculated.
    """
    collection = await get_collection(db, collection_id)

    removed = await collection_content_crud.delete_all_for_collection(db, collection_id)

    parent_ids: List[int] = []
    reference = await content_crud.find_collection_reference(db, collection_id)
    if reference is not None:
        parent_ids = [a.collection_id for a in await collection_content_crud.find_by_content_ids(db, [reference.id])]
        await content_crud.delete_content(db, reference)

    await collections_crud.delete_collection_row(db, collection)
    if parent_ids:
        await refresh_totals_for(db, parent_ids)
    logger.info(f"Deleted collection {collection_id}: {removed} association(s) removed, content kept")


async def validate_client_gallery_access(db: AsyncSession, slug: str, password: Optional[str]) -> bool:
    """Unprotected collections always pass; protected ones need the right password."""
    collection = await get_public_collection(db, slug)
    return check_access(collection, password)


def check_access(collection: Collection, password: Optional[str]) -> bool:
    if not collection.password_protected:
        return True
    if not password:
        return False
    granted = verify_password(password, collection.password_hash)
    if not granted:
        logger.warning(f"Rejected password for protected collection '{collection.slug}'")
    return granted
