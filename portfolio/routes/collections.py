"""
Public read routes: collections, collection pages, client gallery access and the image library.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.exceptions import PortfolioError
from portfolio.schemas import (
    CollectionListResponse,
    CollectionPageResponse,
    GalleryAccessRequest,
    GalleryAccessResponse,
    ImagesPageResponse,
    PaginationMetadata,
)
from portfolio.services import collection_service, content_service
from portfolio.services.content_mapping import collections_to_responses, image_to_response, page_to_response
from portfolio.types import CollectionType
from portfolio.utils.rate_limit import RATE_LIMITS, limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/collections", response_model=CollectionListResponse)
async def list_collections(
    type: Optional[str] = Query(None, description="Filter by collection type, e.g. BLOG"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """Visible collections, newest collection_date first."""
    try:
        collection_type = CollectionType.parse(type) if type else None
        collections, total = await collection_service.list_collections(
            db, collection_type, visible_only=True, limit=limit, offset=offset
        )
        logger.info(f"Retrieved {len(collections)} of {total} collections (type: {type})")
        return CollectionListResponse(
            collections=await collections_to_responses(db, collections),
            total_count=total,
            limit=limit,
            offset=offset,
        )

    except (HTTPException, PortfolioError):
        raise
    except Exception as e:
        logger.error(f"Error fetching collections: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to retrieve collections", "detail": str(e)}
        )


@router.get("/collections/{slug}", response_model=CollectionPageResponse)
async def get_collection(
    slug: str,
    page: int = Query(0, description="Zero-based page number"),
    size: int = Query(0, le=500, description="Page size; 0 uses the collection default"),
    x_gallery_password: Optional[str] = Header(None, alias="X-Gallery-Password"),
    db: AsyncSession = Depends(get_db)
):
    """
    One page of a collection's visible content in order.
    Password-protected client galleries require the X-Gallery-Password header.
    """
    try:
        collection = await collection_service.get_public_collection(db, slug)
        if not collection_service.check_access(collection, x_gallery_password):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": "Access denied", "detail": "This gallery is password protected"}
            )

        collection_page = await collection_service.get_collection_page(db, slug, page, size)
        return await page_to_response(db, collection_page)

    except (HTTPException, PortfolioError):
        raise
    except Exception as e:
        logger.error(f"Error fetching collection '{slug}': {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to retrieve collection", "detail": str(e)}
        )


@router.post("/collections/{slug}/access", response_model=GalleryAccessResponse)
@limiter.limit(RATE_LIMITS["gallery_access"])
async def check_gallery_access(
    request: Request,
    slug: str,
    body: GalleryAccessRequest,
    db: AsyncSession = Depends(get_db)
):
    """Check a client gallery password without loading its content."""
    has_access = await collection_service.validate_client_gallery_access(db, slug, body.password)
    return GalleryAccessResponse(slug=slug, has_access=has_access)


@router.get("/images", response_model=ImagesPageResponse)
async def list_images(
    page: int = Query(0, ge=0),
    size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    """The image library, newest capture date first."""
    try:
        images, total = await content_service.list_images(db, page, size)
        return ImagesPageResponse(
            images=[image_to_response(image) for image in images],
            pagination=PaginationMetadata(
                page=page,
                size=size,
                total_items=total,
                total_pages=-(-total // size) if total else 0,
            ),
        )

    except Exception as e:
        logger.error(f"Error fetching images: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to retrieve images", "detail": str(e)}
        )
