"""
Public vocabulary routes used by the site filters and the CMS pickers.
"""
from typing import List
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.crud import metadata as metadata_crud
from portfolio.database import get_db
from portfolio.models import Camera, FilmType, Lens, Location, Person, Tag
from portfolio.schemas import (
    CameraResponse,
    FilmTypeResponse,
    GeneralMetadataResponse,
    LensResponse,
    LocationResponse,
    PersonResponse,
    TagResponse,
)
from portfolio.services import metadata_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/metadata", response_model=GeneralMetadataResponse)
async def get_general_metadata(db: AsyncSession = Depends(get_db)):
    """All vocabularies, film formats and collection titles in one payload."""
    return await metadata_service.general_metadata(db)


@router.get("/tags", response_model=List[TagResponse])
async def list_tags(db: AsyncSession = Depends(get_db)):
    return await metadata_crud.list_all(db, Tag)


@router.get("/people", response_model=List[PersonResponse])
async def list_people(db: AsyncSession = Depends(get_db)):
    return await metadata_crud.list_all(db, Person)


@router.get("/cameras", response_model=List[CameraResponse])
async def list_cameras(db: AsyncSession = Depends(get_db)):
    return await metadata_crud.list_all(db, Camera)


@router.get("/lenses", response_model=List[LensResponse])
async def list_lenses(db: AsyncSession = Depends(get_db)):
    return await metadata_crud.list_all(db, Lens)


@router.get("/film-types", response_model=List[FilmTypeResponse])
async def list_film_types(db: AsyncSession = Depends(get_db)):
    return await metadata_crud.list_all(db, FilmType)


@router.get("/locations", response_model=List[LocationResponse])
async def list_locations(db: AsyncSession = Depends(get_db)):
    return await metadata_crud.list_all(db, Location)
