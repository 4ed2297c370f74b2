"""
Vocabulary management and the prev/new/remove update pattern shared by
collection and image edits.
"""
from typing import List, Optional, Sequence, Type
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.crud import collections as collections_crud
from portfolio.crud import metadata as metadata_crud
from portfolio.exceptions import ValidationError
from portfolio.models import Camera, FilmType, Lens, Location, Person, Tag
from portfolio.schemas import (
    CameraResponse,
    CollectionIdTitle,
    FilmFormatResponse,
    FilmTypeResponse,
    GeneralMetadataResponse,
    LensResponse,
    LocationResponse,
    LocationUpdate,
    PersonResponse,
    TagResponse,
    VocabularyUpdate,
)
from portfolio.types import FilmFormat

logger = logging.getLogger(__name__)


async def apply_vocabulary_update(
    db: AsyncSession,
    model: Type,
    current: Sequence,
    update: Optional[VocabularyUpdate],
) -> List:
    """
    New membership list for a many-to-many relationship.

    Existing ids in `prev` are attached, names in `new_values` are matched or
    created, ids in `remove` are dropped. Unknown `prev` ids are a validation error.
    """
    result = list(current)
    if update is None:
        return result

    present = {row.id for row in result}

    if update.prev:
        wanted = [row_id for row_id in update.prev if row_id not in present]
        found = await metadata_crud.find_by_ids(db, model, wanted)
        missing = set(wanted) - {row.id for row in found}
        if missing:
            raise ValidationError(f"Unknown {model.__name__} id(s): {sorted(missing)}")
        for row in found:
            result.append(row)
            present.add(row.id)

    if update.new_values:
        for row in await metadata_crud.get_or_create_many(db, model, update.new_values):
            if row.id not in present:
                result.append(row)
                present.add(row.id)

    if update.remove:
        removed = set(update.remove)
        result = [row for row in result if row.id not in removed]

    return result


async def check_vocabulary_ids(db: AsyncSession, model: Type, update: Optional[VocabularyUpdate]) -> None:
    if update is None or not update.prev:
        return
    found = await metadata_crud.find_by_ids(db, model, list(update.prev))
    missing = set(update.prev) - {row.id for row in found}
    if missing:
        raise ValidationError(f"Unknown {model.__name__} id(s): {sorted(missing)}")


async def apply_location_update(
    db: AsyncSession,
    current: Optional[Location],
    update: Optional[LocationUpdate],
) -> Optional[Location]:
    if update is None:
        return current
    if update.remove:
        return None
    if update.new_value:
        return await metadata_crud.get_or_create(db, Location, update.new_value)
    if update.prev is not None:
        location = await metadata_crud.find_by_id(db, Location, update.prev)
        if location is None:
            raise ValidationError(f"Unknown Location id: {update.prev}")
        return location
    return current


async def resolve_by_id_or_name(db: AsyncSession, model: Type, row_id: Optional[int], name: Optional[str]):
    """Row for an explicit id, else match-or-create by name, else None."""
    if row_id is not None:
        row = await metadata_crud.find_by_id(db, model, row_id)
        if row is None:
            raise ValidationError(f"Unknown {model.__name__} id: {row_id}")
        return row
    if name:
        return await metadata_crud.get_or_create(db, model, name)
    return None


async def create_tag(db: AsyncSession, tag_name: str) -> Tag:
    return await metadata_crud.create(db, Tag, tag_name=tag_name.strip())


async def create_person(db: AsyncSession, person_name: str) -> Person:
    return await metadata_crud.create(db, Person, person_name=person_name.strip())


async def create_camera(db: AsyncSession, camera_name: str, body_serial_number: Optional[str] = None) -> Camera:
    return await metadata_crud.create(
        db, Camera, camera_name=camera_name.strip(), body_serial_number=body_serial_number
    )


async def create_lens(db: AsyncSession, lens_name: str, lens_serial_number: Optional[str] = None) -> Lens:
    return await metadata_crud.create(db, Lens, lens_name=lens_name.strip(), lens_serial_number=lens_serial_number)


async def create_film_type(db: AsyncSession, film_type_name: str, display_name: str, default_iso: int) -> FilmType:
    return await metadata_crud.create(
        db,
        FilmType,
        film_type_name=film_type_name.strip(),
        display_name=display_name.strip(),
        default_iso=default_iso,
    )


async def create_location(db: AsyncSession, location_name: str) -> Location:
    return await metadata_crud.create(db, Location, location_name=location_name.strip())


def film_formats() -> List[FilmFormatResponse]:
    return [FilmFormatResponse(name=f.value, display_name=f.display_name) for f in FilmFormat]


async def general_metadata(db: AsyncSession) -> GeneralMetadataResponse:
    return GeneralMetadataResponse(
        tags=[TagResponse.model_validate(t) for t in await metadata_crud.list_all(db, Tag)],
        people=[PersonResponse.model_validate(p) for p in await metadata_crud.list_all(db, Person)],
        cameras=[CameraResponse.model_validate(c) for c in await metadata_crud.list_all(db, Camera)],
        lenses=[LensResponse.model_validate(lens) for lens in await metadata_crud.list_all(db, Lens)],
        film_types=[FilmTypeResponse.model_validate(f) for f in await metadata_crud.list_all(db, FilmType)],
        locations=[LocationResponse.model_validate(loc) for loc in await metadata_crud.list_all(db, Location)],
        film_formats=film_formats(),
        collections=[
            CollectionIdTitle(id=collection_id, title=title)
            for collection_id, title in await collections_crud.list_id_title_pairs(db)
        ],
    )
