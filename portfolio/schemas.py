"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
"""
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from portfolio.types import CollectionType, DisplayMode, FilmFormat, TextFormType


def _reject_duplicates(values: Optional[List[int]], label: str = "IDs"):
    if values and len(values) != len(set(values)):
        raise ValueError(f"Duplicate {label} are not allowed")
    return values


# Vocabulary

class TagResponse(BaseModel):
    id: int
    tag_name: str

    model_config = ConfigDict(from_attributes=True)


class PersonResponse(BaseModel):
    id: int
    person_name: str

    model_config = ConfigDict(from_attributes=True)


class CameraResponse(BaseModel):
    id: int
    camera_name: str
    body_serial_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LensResponse(BaseModel):
    id: int
    lens_name: str
    lens_serial_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class FilmTypeResponse(BaseModel):
    id: int
    film_type_name: str
    display_name: str
    default_iso: int

    model_config = ConfigDict(from_attributes=True)


class LocationResponse(BaseModel):
    id: int
    location_name: str

    model_config = ConfigDict(from_attributes=True)


class TagCreate(BaseModel):
    tag_name: str = Field(..., min_length=1, max_length=100)


class PersonCreate(BaseModel):
    person_name: str = Field(..., min_length=1, max_length=100)


class CameraCreate(BaseModel):
    camera_name: str = Field(..., min_length=1, max_length=100)
    body_serial_number: Optional[str] = None


class LensCreate(BaseModel):
    lens_name: str = Field(..., min_length=1, max_length=150)
    lens_serial_number: Optional[str] = None


class FilmTypeCreate(BaseModel):
    film_type_name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    default_iso: int = Field(..., ge=1)


class LocationCreate(BaseModel):
    location_name: str = Field(..., min_length=1, max_length=255)


class FilmFormatResponse(BaseModel):
    name: str
    display_name: str


class CollectionIdTitle(BaseModel):
    id: int
    title: str


class GeneralMetadataResponse(BaseModel):
    """Everything the CMS editor needs to populate its pickers in one call."""
    tags: List[TagResponse]
    people: List[PersonResponse]
    cameras: List[CameraResponse]
    lenses: List[LensResponse]
    film_types: List[FilmTypeResponse]
    locations: List[LocationResponse]
    film_formats: List[FilmFormatResponse]
    collections: List[CollectionIdTitle]


# Update patterns

class VocabularyUpdate(BaseModel):
    """
    Many-to-many update: attach existing rows by id (prev), create and attach
    by name (new_values), detach by id (remove).
    """
    prev: Optional[List[int]] = None
    new_values: Optional[List[str]] = None
    remove: Optional[List[int]] = None


class LocationUpdate(BaseModel):
    """Single-valued variant: set an existing id, create by name, or clear."""
    prev: Optional[int] = None
    new_value: Optional[str] = Field(None, min_length=1, max_length=255)
    remove: bool = False


# Content

class ContentResponseBase(BaseModel):
    id: int
    created_at: datetime
    updated_at: datetime
    tags: List[TagResponse] = []
    # Placement within the collection being viewed; absent outside a collection
    order_index: Optional[int] = None
    visible: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)


class ImageContentResponse(ContentResponseBase):
    content_type: Literal["IMAGE"] = "IMAGE"
    title: Optional[str] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    iso: Optional[int] = None
    author: Optional[str] = None
    rating: Optional[int] = None
    f_stop: Optional[str] = None
    shutter_speed: Optional[str] = None
    focal_length: Optional[str] = None
    black_and_white: bool = False
    is_film: bool = False
    film_format: Optional[str] = None
    create_date: Optional[str] = None
    image_url_web: str
    image_url_original: Optional[str] = None
    camera: Optional[CameraResponse] = None
    lens: Optional[LensResponse] = None
    film_type: Optional[FilmTypeResponse] = None
    location: Optional[LocationResponse] = None
    people: List[PersonResponse] = []


class TextContentResponse(ContentResponseBase):
    content_type: Literal["TEXT"] = "TEXT"
    text_content: str
    format_type: Optional[str] = None


class GifContentResponse(ContentResponseBase):
    content_type: Literal["GIF"] = "GIF"
    title: Optional[str] = None
    gif_url: str
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    author: Optional[str] = None
    create_date: Optional[str] = None


class CollectionContentResponse(ContentResponseBase):
    """A nested collection shown as a card inside its parent."""
    content_type: Literal["COLLECTION"] = "COLLECTION"
    referenced_collection_id: int
    title: Optional[str] = None
    slug: Optional[str] = None
    collection_type: Optional[CollectionType] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None


ContentResponse = Annotated[
    Union[ImageContentResponse, TextContentResponse, GifContentResponse, CollectionContentResponse],
    Field(discriminator="content_type"),
]


class PaginationMetadata(BaseModel):
    page: int
    size: int
    total_items: int
    total_pages: int


class ImagesPageResponse(BaseModel):
    images: List[ImageContentResponse]
    pagination: PaginationMetadata


class TextContentCreate(BaseModel):
    text_content: str = Field(..., min_length=1)
    format_type: Optional[TextFormType] = None
    # Insert position; appended when omitted
    order_index: Optional[int] = Field(None, ge=0)

    @field_validator("format_type", mode="before")
    @classmethod
    def parse_format_type(cls, v):
        if v is None or isinstance(v, TextFormType):
            return v
        parsed = TextFormType.parse(str(v))
        if parsed is None:
            raise ValueError(f"Unknown text format: {v}")
        return parsed


class ImageUpdate(BaseModel):
    """Partial metadata update for one image; omitted fields are left alone."""
    id: int
    title: Optional[str] = Field(None, max_length=255)
    rating: Optional[int] = Field(None, ge=0, le=5)
    author: Optional[str] = Field(None, max_length=255)
    iso: Optional[int] = Field(None, ge=0)
    f_stop: Optional[str] = Field(None, max_length=20)
    shutter_speed: Optional[str] = Field(None, max_length=30)
    focal_length: Optional[str] = Field(None, max_length=30)
    black_and_white: Optional[bool] = None
    is_film: Optional[bool] = None
    film_format: Optional[FilmFormat] = None
    film_type_id: Optional[int] = None
    camera_id: Optional[int] = None
    camera_name: Optional[str] = Field(None, min_length=1, max_length=100)
    lens_id: Optional[int] = None
    lens_name: Optional[str] = Field(None, min_length=1, max_length=150)
    create_date: Optional[str] = Field(None, max_length=30)
    location: Optional[LocationUpdate] = None
    tags: Optional[VocabularyUpdate] = None
    people: Optional[VocabularyUpdate] = None


class ImageUpdatesRequest(BaseModel):
    images: List[ImageUpdate] = Field(..., min_length=1)

    @field_validator("images")
    @classmethod
    def validate_unique_ids(cls, v):
        _reject_duplicates([image.id for image in v], "image IDs")
        return v


class ContentDeleteRequest(BaseModel):
    content_ids: List[int] = Field(..., min_length=1)

    @field_validator("content_ids")
    @classmethod
    def validate_unique_ids(cls, v):
        return _reject_duplicates(v, "content IDs")


class ItemError(BaseModel):
    id: int
    error: str


class FileError(BaseModel):
    filename: str
    error: str


class BatchResult(BaseModel):
    succeeded: List[int]
    errors: List[ItemError] = []


class UploadResponse(BaseModel):
    uploaded: List[ContentResponse]
    errors: List[FileError] = []


# Collections

class ReorderOperation(BaseModel):
    """
    One placement: content_id (a real id, or -k for the k-th item created earlier
    in the same request) or old_order_index identifies the item to move.
    """
    content_id: Optional[int] = None
    old_order_index: Optional[int] = Field(None, ge=0)
    new_order_index: int = Field(..., ge=0)

    @model_validator(mode="after")
    def exactly_one_reference(self):
        if (self.content_id is None) == (self.old_order_index is None):
            raise ValueError("Provide exactly one of content_id or old_order_index")
        if self.content_id == 0:
            raise ValueError("content_id 0 is not a valid reference")
        return self


class ReorderRequest(BaseModel):
    operations: List[ReorderOperation] = Field(..., min_length=1)


class ChildCollectionRef(BaseModel):
    collection_id: int
    order_index: Optional[int] = Field(None, ge=0)
    visible: Optional[bool] = None


class ChildCollectionsUpdate(BaseModel):
    """Nested collections: adjust existing (prev), add (new_values), detach by collection id (remove)."""
    prev: Optional[List[ChildCollectionRef]] = None
    new_values: Optional[List[ChildCollectionRef]] = None
    remove: Optional[List[int]] = None


class CollectionCreate(BaseModel):
    type: CollectionType
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    collection_date: Optional[date] = None
    visible: bool = True
    display_mode: Optional[DisplayMode] = None
    content_per_page: Optional[int] = Field(None, ge=1, le=500)
    cover_image_id: Optional[int] = None
    password: Optional[str] = Field(None, min_length=1, max_length=128)
    location: Optional[LocationUpdate] = None

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v):
        return v if isinstance(v, CollectionType) else CollectionType.parse(v)


class CollectionUpdate(BaseModel):
    """
    Partial collection update. Besides plain fields it can add text blocks and
    then reorder, in that order, so reorder operations may use placeholders
    (-1, -2, ...) for the text blocks created by the same request.
    """
    type: Optional[CollectionType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    collection_date: Optional[date] = None
    visible: Optional[bool] = None
    display_mode: Optional[DisplayMode] = None
    content_per_page: Optional[int] = Field(None, ge=1, le=500)
    cover_image_id: Optional[int] = None
    clear_cover_image: bool = False
    password: Optional[str] = Field(None, min_length=1, max_length=128)
    clear_password: bool = False
    location: Optional[LocationUpdate] = None
    tags: Optional[VocabularyUpdate] = None
    people: Optional[VocabularyUpdate] = None
    collections: Optional[ChildCollectionsUpdate] = None
    new_text_blocks: Optional[List[str]] = None
    new_text_blocks_insert_at: Optional[int] = Field(None, ge=0)
    text_format: Optional[TextFormType] = None
    reorder_operations: Optional[List[ReorderOperation]] = None

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v):
        if v is None or isinstance(v, CollectionType):
            return v
        return CollectionType.parse(v)

    @field_validator("text_format", mode="before")
    @classmethod
    def parse_text_format(cls, v):
        if v is None or isinstance(v, TextFormType):
            return v
        parsed = TextFormType.parse(str(v))
        if parsed is None:
            raise ValueError(f"Unknown text format: {v}")
        return parsed


class AttachContentRequest(BaseModel):
    content_ids: List[int] = Field(..., min_length=1)
    # Insert position for the first item; appended when omitted
    order_index: Optional[int] = Field(None, ge=0)
    visible: bool = True

    @field_validator("content_ids")
    @classmethod
    def validate_unique_ids(cls, v):
        return _reject_duplicates(v, "content IDs")


class DetachContentRequest(BaseModel):
    content_ids: List[int] = Field(..., min_length=1)
    # Renormalize order to 0..N-1 after removal
    compact: bool = False


class AssociationUpdate(BaseModel):
    visible: Optional[bool] = None
    order_index: Optional[int] = Field(None, ge=0)


class CollectionResponse(BaseModel):
    id: int
    type: CollectionType
    title: str
    slug: str
    description: Optional[str] = None
    collection_date: Optional[date] = None
    visible: bool
    display_mode: Optional[DisplayMode] = None
    content_per_page: int
    total_content: int
    total_pages: int
    password_protected: bool
    cover_image: Optional[ImageContentResponse] = None
    location: Optional[LocationResponse] = None
    tags: List[TagResponse] = []
    people: List[PersonResponse] = []
    created_at: datetime
    updated_at: datetime


class CollectionListResponse(BaseModel):
    collections: List[CollectionResponse]
    total_count: int
    limit: int
    offset: int


class CollectionPageResponse(BaseModel):
    collection: CollectionResponse
    content: List[ContentResponse]
    pagination: PaginationMetadata


class ReorderResponse(BaseModel):
    collection_id: int
    updated: int


class CompactResponse(BaseModel):
    collection_id: int
    changed: int


class AssociationResponse(BaseModel):
    id: int
    collection_id: int
    content_id: int
    order_index: int
    visible: bool

    model_config = ConfigDict(from_attributes=True)


# Auth

class LoginRequest(BaseModel):
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class GalleryAccessRequest(BaseModel):
    password: str = Field(..., min_length=1)


class GalleryAccessResponse(BaseModel):
    slug: str
    has_access: bool
