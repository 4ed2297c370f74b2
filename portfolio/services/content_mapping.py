"""
Model -> response conversion for content and collections.
"""
from typing import Dict, List, Optional, Sequence
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.crud import collections as collections_crud
from portfolio.crud import content as content_crud
from portfolio.models import (
    Collection,
    CollectionContent,
    Content,
    ContentCollection,
    ContentGif,
    ContentImage,
    ContentText,
)
from portfolio.schemas import (
    CollectionContentResponse,
    CollectionPageResponse,
    CollectionResponse,
    GifContentResponse,
    ImageContentResponse,
    LocationResponse,
    PaginationMetadata,
    PersonResponse,
    TagResponse,
    TextContentResponse,
)
from portfolio.types import CollectionType, DisplayMode

logger = logging.getLogger(__name__)


def image_to_response(image: ContentImage, association: Optional[CollectionContent] = None) -> ImageContentResponse:
    response = ImageContentResponse.model_validate(image)
    return _with_placement(response, association)


def content_to_response(
    content: Content,
    association: Optional[CollectionContent] = None,
    referenced: Optional[Collection] = None,
    referenced_cover: Optional[ContentImage] = None,
):
    """
    Typed response for one content row.
    Nested collections need the referenced collection (and its cover) loaded by the caller.
    """
    if isinstance(content, ContentImage):
        response = ImageContentResponse.model_validate(content)
    elif isinstance(content, ContentText):
        response = TextContentResponse.model_validate(content)
    elif isinstance(content, ContentGif):
        response = GifContentResponse.model_validate(content)
    elif isinstance(content, ContentCollection):
        response = CollectionContentResponse(
            id=content.id,
            created_at=content.created_at,
            updated_at=content.updated_at,
            tags=[TagResponse.model_validate(tag) for tag in content.tags],
            referenced_collection_id=content.referenced_collection_id,
            title=referenced.title if referenced else None,
            slug=referenced.slug if referenced else None,
            collection_type=CollectionType.parse(referenced.type) if referenced else None,
            description=referenced.description if referenced else None,
            cover_image_url=referenced_cover.image_url_web if referenced_cover else None,
        )
    else:
        raise TypeError(f"Unsupported content class {type(content).__name__}")
    return _with_placement(response, association)


def _with_placement(response, association: Optional[CollectionContent]):
    if association is None:
        return response
    return response.model_copy(update={
        "order_index": association.order_index,
        "visible": association.visible,
    })


async def resolve_cover_image(db: AsyncSession, collection: Collection) -> Optional[ContentImage]:
    """
    The collection's cover image, or None.
    A cover id pointing at a missing or non-image row is logged and treated as absent.
    """
    if not collection.cover_image_id:
        return None
    content = await content_crud.find_by_id(db, collection.cover_image_id)
    if content is None:
        logger.warning(
            f"Collection {collection.id} cover_image_id {collection.cover_image_id} does not exist"
        )
        return None
    if not isinstance(content, ContentImage):
        logger.warning(
            f"Collection {collection.id} cover_image_id {collection.cover_image_id} "
            f"is {content.content_type}, not IMAGE"
        )
        return None
    return content


def collection_to_response(collection: Collection, cover: Optional[ContentImage] = None) -> CollectionResponse:
    return CollectionResponse(
        id=collection.id,
        type=CollectionType.parse(collection.type),
        title=collection.title,
        slug=collection.slug,
        description=collection.description,
        collection_date=collection.collection_date,
        visible=collection.visible,
        display_mode=DisplayMode(collection.display_mode) if collection.display_mode else None,
        content_per_page=collection.content_per_page,
        total_content=collection.total_content,
        total_pages=collection.total_pages,
        password_protected=collection.password_protected,
        cover_image=image_to_response(cover) if cover else None,
        location=LocationResponse.model_validate(collection.location) if collection.location else None,
        tags=[TagResponse.model_validate(tag) for tag in collection.tags],
        people=[PersonResponse.model_validate(person) for person in collection.people],
        created_at=collection.created_at,
        updated_at=collection.updated_at,
    )


async def collections_to_responses(db: AsyncSession, collections: Sequence[Collection]) -> List[CollectionResponse]:
    """Batch variant: covers for every collection are loaded in one pass."""
    cover_ids = [c.cover_image_id for c in collections if c.cover_image_id]
    covers: Dict[int, ContentImage] = {
        image.id: image for image in await content_crud.find_images_by_ids(db, cover_ids)
    }
    responses = []
    for collection in collections:
        cover = covers.get(collection.cover_image_id) if collection.cover_image_id else None
        if collection.cover_image_id and cover is None:
            logger.warning(
                f"Collection {collection.id} cover_image_id {collection.cover_image_id} is not an image"
            )
        responses.append(collection_to_response(collection, cover))
    return responses


async def associations_to_responses(db: AsyncSession, associations: Sequence[CollectionContent]) -> list:
    """
    Typed content for a page of associations, in association order.

    Content is batch-loaded per type and re-correlated by id; nested collection
    cards get their referenced collection and its cover in two more batch loads.
    """
    loaded = await content_crud.find_all_by_ids(db, [a.content_id for a in associations])
    content_by_id = {content.id: content for content in loaded}

    referenced_ids = [c.referenced_collection_id for c in loaded if isinstance(c, ContentCollection)]
    referenced_by_id = {c.id: c for c in await collections_crud.find_by_ids(db, referenced_ids)}
    cover_ids = [c.cover_image_id for c in referenced_by_id.values() if c.cover_image_id]
    covers = {image.id: image for image in await content_crud.find_images_by_ids(db, cover_ids)}

    responses = []
    for association in associations:
        content = content_by_id.get(association.content_id)
        if content is None:
            logger.warning(
                f"Association {association.id} references content {association.content_id} "
                f"that could not be loaded; skipping"
            )
            continue
        referenced = None
        cover = None
        if isinstance(content, ContentCollection):
            referenced = referenced_by_id.get(content.referenced_collection_id)
            if referenced is not None and referenced.cover_image_id:
                cover = covers.get(referenced.cover_image_id)
        responses.append(content_to_response(content, association, referenced, cover))
    return responses


async def page_to_response(db: AsyncSession, page) -> CollectionPageResponse:
    """Response for a collection_service.CollectionPage."""
    return CollectionPageResponse(
        collection=collection_to_response(page.collection, page.cover),
        content=await associations_to_responses(db, page.associations),
        pagination=PaginationMetadata(
            page=page.page,
            size=page.size,
            total_items=page.total_items,
            total_pages=page.total_pages,
        ),
    )
