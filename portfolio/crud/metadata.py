"""
Vocabulary tables: tags, people, cameras, lenses, film types and locations.

Lookups by name are case-insensitive. Inserts that collide with an existing
unique name surface as ConflictError.
"""
from typing import List, Optional, Sequence, Type, TypeVar
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import Base
from portfolio.exceptions import ConflictError
from portfolio.models import Camera, FilmType, Lens, Location, Person, Tag

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# Model -> column holding its unique name
NAME_COLUMNS = {
    Tag: Tag.tag_name,
    Person: Person.person_name,
    Camera: Camera.camera_name,
    Lens: Lens.lens_name,
    FilmType: FilmType.film_type_name,
    Location: Location.location_name,
}


async def list_all(db: AsyncSession, model: Type[ModelT]) -> List[ModelT]:
    """All rows of a vocabulary table, alphabetical by name."""
    name_column = NAME_COLUMNS[model]
    result = await db.execute(select(model).order_by(func.lower(name_column).asc()))
    return list(result.scalars().all())


async def find_by_ids(db: AsyncSession, model: Type[ModelT], ids: Sequence[int]) -> List[ModelT]:
    if not ids:
        return []
    result = await db.execute(select(model).where(model.id.in_(list(ids))))
    return list(result.scalars().all())


async def find_by_id(db: AsyncSession, model: Type[ModelT], row_id: int) -> Optional[ModelT]:
    result = await db.execute(select(model).where(model.id == row_id))
    return result.scalar_one_or_none()


async def find_by_name(db: AsyncSession, model: Type[ModelT], name: str) -> Optional[ModelT]:
    name_column = NAME_COLUMNS[model]
    result = await db.execute(
        select(model).where(func.lower(name_column) == name.strip().lower()).limit(1)
    )
    return result.scalar_one_or_none()


async def create(db: AsyncSession, model: Type[ModelT], **fields) -> ModelT:
    """
    Insert a vocabulary row.

    Raises:
        ConflictError: if a row with the same name already exists
    """
    name_column = NAME_COLUMNS[model]
    name = fields[name_column.key]
    if await find_by_name(db, model, name) is not None:
        raise ConflictError(f"{model.__name__} '{name}' already exists")

    row = model(**fields)
    db.add(row)
    try:
        await db.flush()
    except IntegrityError as e:
        logger.warning(f"Integrity error creating {model.__name__} '{name}': {str(e.orig)}")
        raise ConflictError(f"{model.__name__} '{name}' already exists")
    logger.info(f"Created {model.__name__} {row.id} ('{name}')")
    return row


async def get_or_create(db: AsyncSession, model: Type[ModelT], name: str, **extra) -> ModelT:
    """Case-insensitive match on name, creating the row when none exists."""
    name = name.strip()
    existing = await find_by_name(db, model, name)
    if existing is not None:
        return existing
    name_column = NAME_COLUMNS[model]
    return await create(db, model, **{name_column.key: name}, **extra)


async def get_or_create_many(db: AsyncSession, model: Type[ModelT], names: Sequence[str]) -> List[ModelT]:
    rows = []
    seen = set()
    for name in names:
        if not name or not name.strip() or name.strip().lower() in seen:
            continue
        seen.add(name.strip().lower())
        rows.append(await get_or_create(db, model, name))
    return rows
