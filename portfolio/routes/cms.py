"""
CMS API routes.
Everything except login requires a JWT from the cms_token cookie or a Bearer header.
"""
from typing import List
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.exceptions import PortfolioError
from portfolio.schemas import (
    AssociationResponse,
    AssociationUpdate,
    AttachContentRequest,
    BatchResult,
    CameraCreate,
    CameraResponse,
    CollectionCreate,
    CollectionListResponse,
    CollectionPageResponse,
    CollectionResponse,
    CollectionUpdate,
    CompactResponse,
    ContentDeleteRequest,
    DetachContentRequest,
    FileError,
    FilmTypeCreate,
    FilmTypeResponse,
    ImageUpdatesRequest,
    ItemError,
    LensCreate,
    LensResponse,
    LocationCreate,
    LocationResponse,
    LoginRequest,
    LoginResponse,
    PersonCreate,
    PersonResponse,
    ReorderRequest,
    ReorderResponse,
    TagCreate,
    TagResponse,
    TextContentCreate,
    TextContentResponse,
    UploadResponse,
)
from portfolio.services import collection_service, content_service, metadata_service
from portfolio.services.content_mapping import (
    collection_to_response,
    collections_to_responses,
    content_to_response,
    page_to_response,
    resolve_cover_image,
)
from portfolio.utils.jwt_auth import COOKIE_NAME, authenticate_user, create_access_token, verify_cms_token
from portfolio.utils.rate_limit import RATE_LIMITS, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cms", tags=["CMS"])


async def _fail(db: AsyncSession, action: str, e: Exception) -> HTTPException:
    """Roll back and build the 500 for an unexpected error."""
    logger.error(f"Error {action}: {str(e)}", exc_info=True)
    await db.rollback()
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": f"Failed {action}", "detail": str(e)}
    )


# Authentication

@router.post("/login", response_model=LoginResponse)
@limiter.limit(RATE_LIMITS["login"])
async def login(request: Request, response: Response, body: LoginRequest):
    """
    Exchange the admin password for an access token.
    The token is returned in the body and set as an httpOnly cookie.
    """
    claims = authenticate_user(body.password)
    token = create_access_token(claims)
    expires_in = settings.JWT_EXPIRE_MINUTES * 60

    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=expires_in,
        httponly=True,
        secure=True,
        samesite="lax",
    )
    logger.info("Admin logged in")
    return LoginResponse(access_token=token, expires_in=expires_in)


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return {"message": "Logged out"}


# Collections

@router.get("/collections", response_model=CollectionListResponse)
async def list_all_collections(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Every collection, hidden ones included."""
    collections, total = await collection_service.list_collections(db, limit=limit, offset=offset)
    return CollectionListResponse(
        collections=await collections_to_responses(db, collections),
        total_count=total,
        limit=limit,
        offset=offset,
    )


@router.post("/collections", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
async def create_collection(
    body: CollectionCreate,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    try:
        collection = await collection_service.create_collection(db, body)
        cover = await resolve_cover_image(db, collection)
        result = collection_to_response(collection, cover)
        await db.commit()
        return result

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, "creating collection", e)


@router.get("/collections/{collection_id}", response_model=CollectionPageResponse)
async def get_collection_for_edit(
    collection_id: int,
    page: int = Query(0),
    size: int = Query(0, le=500),
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """A collection page with hidden content included."""
    collection_page = await collection_service.get_collection_page_by_id(db, collection_id, page, size)
    return await page_to_response(db, collection_page)


@router.put("/collections/{collection_id}", response_model=CollectionPageResponse)
async def update_collection(
    collection_id: int,
    body: CollectionUpdate,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """
    Partial update. May also add text blocks and reorder content in the same
    transaction; reorder operations can reference the new blocks as -1, -2, ...
    """
    try:
        await collection_service.update_collection(db, collection_id, body)
        collection_page = await collection_service.get_collection_page_by_id(db, collection_id)
        result = await page_to_response(db, collection_page)
        await db.commit()
        return result

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"updating collection {collection_id}", e)


@router.delete("/collections/{collection_id}")
async def delete_collection(
    collection_id: int,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Delete a collection. Its content is kept."""
    try:
        await collection_service.delete_collection(db, collection_id)
        await db.commit()
        return {"message": "Collection deleted", "id": collection_id}

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"deleting collection {collection_id}", e)


@router.put("/collections/{collection_id}/reorder", response_model=ReorderResponse)
async def reorder_collection(
    collection_id: int,
    body: ReorderRequest,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    try:
        await collection_service.get_collection(db, collection_id)
        updated = await collection_service.reorder_content(db, collection_id, body.operations)
        await db.commit()
        return ReorderResponse(collection_id=collection_id, updated=updated)

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"reordering collection {collection_id}", e)


@router.post("/collections/{collection_id}/compact", response_model=CompactResponse)
async def compact_collection(
    collection_id: int,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Renormalize order indices to 0..N-1 keeping the current order."""
    try:
        changed = await collection_service.compact_order(db, collection_id)
        await db.commit()
        return CompactResponse(collection_id=collection_id, changed=changed)

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"compacting collection {collection_id}", e)


@router.post("/collections/{collection_id}/content", response_model=List[AssociationResponse])
async def attach_content(
    collection_id: int,
    body: AttachContentRequest,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    try:
        associations = await collection_service.attach_existing_content(
            db, collection_id, body.content_ids, body.order_index, body.visible
        )
        result = [AssociationResponse.model_validate(a) for a in associations]
        await db.commit()
        return result

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"attaching content to collection {collection_id}", e)


@router.delete("/collections/{collection_id}/content")
async def detach_content(
    collection_id: int,
    body: DetachContentRequest,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Remove content from this collection only; the content itself is kept."""
    try:
        removed = await collection_service.detach_content(db, collection_id, body.content_ids, body.compact)
        await db.commit()
        return {"collection_id": collection_id, "removed": removed, "compacted": body.compact}

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"detaching content from collection {collection_id}", e)


@router.patch("/collections/{collection_id}/content/{content_id}", response_model=AssociationResponse)
async def update_association(
    collection_id: int,
    content_id: int,
    body: AssociationUpdate,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Toggle visibility or set the order index of one item in one collection."""
    try:
        association = await collection_service.update_association(
            db, collection_id, content_id, visible=body.visible, order_index=body.order_index
        )
        result = AssociationResponse.model_validate(association)
        await db.commit()
        return result

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"updating content {content_id} in collection {collection_id}", e)


@router.post(
    "/collections/{collection_id}/images",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED
)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_images(
    collection_id: int,
    request: Request,
    files: List[UploadFile] = File(..., description="Images or GIFs to add to the collection"),
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """
    Process and append one or more files.
    Files that fail are listed in `errors`; the rest are kept.
    """
    try:
        uploads = []
        for upload in files:
            uploads.append(content_service.UploadFile(filename=upload.filename or "upload", data=await upload.read()))

        outcome = await content_service.upload_images(db, collection_id, uploads)
        result = UploadResponse(
            uploaded=[
                content_to_response(content, association)
                for content, association in zip(outcome.created, outcome.associations)
            ],
            errors=[FileError(filename=name, error=error) for name, error in outcome.errors],
        )
        await db.commit()
        return result

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"uploading to collection {collection_id}", e)


@router.post(
    "/collections/{collection_id}/text",
    response_model=TextContentResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_text_block(
    collection_id: int,
    body: TextContentCreate,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    try:
        text, association = await content_service.create_text_content(
            db, collection_id, body.text_content, body.format_type, body.order_index
        )
        result = content_to_response(text, association)
        await db.commit()
        return result

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, f"adding text to collection {collection_id}", e)


# Content

@router.put("/images", response_model=BatchResult)
async def update_images(
    body: ImageUpdatesRequest,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Batch image metadata edit; rejected items are reported per id."""
    try:
        outcome = await content_service.update_images(db, body.images)
        await db.commit()
        return BatchResult(
            succeeded=outcome.succeeded,
            errors=[ItemError(id=item_id, error=error) for item_id, error in outcome.errors],
        )

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, "updating images", e)


@router.delete("/content", response_model=BatchResult)
async def delete_content(
    body: ContentDeleteRequest,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    """Delete content from every collection that uses it."""
    try:
        outcome = await content_service.delete_contents(db, body.content_ids)
        await db.commit()
        return BatchResult(
            succeeded=outcome.succeeded,
            errors=[ItemError(id=item_id, error=error) for item_id, error in outcome.errors],
        )

    except (HTTPException, PortfolioError):
        await db.rollback()
        raise
    except Exception as e:
        raise await _fail(db, "deleting content", e)


# Vocabulary

@router.post("/tags", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(body: TagCreate, db: AsyncSession = Depends(get_db), claims: dict = Depends(verify_cms_token)):
    try:
        tag = await metadata_service.create_tag(db, body.tag_name)
        await db.commit()
        return tag
    except PortfolioError:
        await db.rollback()
        raise


@router.post("/people", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_person(body: PersonCreate, db: AsyncSession = Depends(get_db), claims: dict = Depends(verify_cms_token)):
    try:
        person = await metadata_service.create_person(db, body.person_name)
        await db.commit()
        return person
    except PortfolioError:
        await db.rollback()
        raise


@router.post("/cameras", response_model=CameraResponse, status_code=status.HTTP_201_CREATED)
async def create_camera(body: CameraCreate, db: AsyncSession = Depends(get_db), claims: dict = Depends(verify_cms_token)):
    try:
        camera = await metadata_service.create_camera(db, body.camera_name, body.body_serial_number)
        await db.commit()
        return camera
    except PortfolioError:
        await db.rollback()
        raise


@router.post("/lenses", response_model=LensResponse, status_code=status.HTTP_201_CREATED)
async def create_lens(body: LensCreate, db: AsyncSession = Depends(get_db), claims: dict = Depends(verify_cms_token)):
    try:
        lens = await metadata_service.create_lens(db, body.lens_name, body.lens_serial_number)
        await db.commit()
        return lens
    except PortfolioError:
        await db.rollback()
        raise


@router.post("/film-types", response_model=FilmTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_film_type(
    body: FilmTypeCreate,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    try:
        film_type = await metadata_service.create_film_type(
            db, body.film_type_name, body.display_name, body.default_iso
        )
        await db.commit()
        return film_type
    except PortfolioError:
        await db.rollback()
        raise


@router.post("/locations", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location(
    body: LocationCreate,
    db: AsyncSession = Depends(get_db),
    claims: dict = Depends(verify_cms_token)
):
    try:
        location = await metadata_service.create_location(db, body.location_name)
        await db.commit()
        return location
    except PortfolioError:
        await db.rollback()
        raise
