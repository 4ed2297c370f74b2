"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).

Content uses joined-table inheritance: every row lives in the `content` base table
and one type-specific child table keyed by the same id. Collections reference
content only through the `collection_content` join table, which carries the
per-collection order and visibility.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from portfolio.database import Base
from portfolio.types import ContentType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _created_at():
    return Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


def _updated_at():
    return Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


content_tags = Table(
    "content_tags",
    Base.metadata,
    Column("content_id", Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True),
)

content_image_people = Table(
    "content_image_people",
    Base.metadata,
    Column("image_id", Integer, ForeignKey("content_image.id", ondelete="CASCADE"), primary_key=True),
    Column("person_id", Integer, ForeignKey("content_people.id", ondelete="CASCADE"), primary_key=True),
)

collection_tags = Table(
    "collection_tags",
    Base.metadata,
    Column("collection_id", Integer, ForeignKey("collection.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True),
)

collection_people = Table(
    "collection_people",
    Base.metadata,
    Column("collection_id", Integer, ForeignKey("collection.id", ondelete="CASCADE"), primary_key=True),
    Column("person_id", Integer, ForeignKey("content_people.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(Base):
    __tablename__ = "tag"

    id = Column(Integer, primary_key=True, index=True)
    tag_name = Column(String(100), nullable=False, unique=True)
    created_at = _created_at()


class Person(Base):
    __tablename__ = "content_people"

    id = Column(Integer, primary_key=True, index=True)
    person_name = Column(String(100), nullable=False, unique=True)
    created_at = _created_at()


class Camera(Base):
    __tablename__ = "content_cameras"

    id = Column(Integer, primary_key=True, index=True)
    camera_name = Column(String(100), nullable=False, unique=True)
    body_serial_number = Column(String(100), nullable=True)
    created_at = _created_at()


class Lens(Base):
    __tablename__ = "content_lenses"

    id = Column(Integer, primary_key=True, index=True)
    lens_name = Column(String(150), nullable=False, unique=True)
    lens_serial_number = Column(String(100), nullable=True)
    created_at = _created_at()


class FilmType(Base):
    __tablename__ = "content_film_types"

    id = Column(Integer, primary_key=True, index=True)
    film_type_name = Column(String(100), nullable=False, unique=True)
    display_name = Column(String(100), nullable=False)
    default_iso = Column(Integer, nullable=False)
    created_at = _created_at()


class Location(Base):
    __tablename__ = "location"

    id = Column(Integer, primary_key=True, index=True)
    location_name = Column(String(255), nullable=False, unique=True)
    created_at = _created_at()


class Content(Base):
    """
    Base row shared by every content variant.
    Never instantiated directly; use ContentImage, ContentText, ContentGif or ContentCollection.
    """
    __tablename__ = "content"

    id = Column(Integer, primary_key=True, index=True)
    content_type = Column(String(20), nullable=False, index=True)
    created_at = _created_at()
    updated_at = _updated_at()

    tags = relationship("Tag", secondary=content_tags, lazy="selectin", order_by="Tag.tag_name")

    __mapper_args__ = {
        "polymorphic_on": content_type,
    }


class ContentImage(Content):
    __tablename__ = "content_image"

    id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True)
    title = Column(String(255), nullable=True)
    image_width = Column(Integer, nullable=True)
    image_height = Column(Integer, nullable=True)
    iso = Column(Integer, nullable=True)
    author = Column(String(255), nullable=True)
    rating = Column(Integer, nullable=True)
    f_stop = Column(String(20), nullable=True)
    shutter_speed = Column(String(30), nullable=True)
    focal_length = Column(String(30), nullable=True)
    black_and_white = Column(Boolean, nullable=False, default=False)
    is_film = Column(Boolean, nullable=False, default=False)
    film_format = Column(String(20), nullable=True)
    create_date = Column(String(30), nullable=True)
    image_url_web = Column(String(1024), nullable=False)
    image_url_original = Column(String(1024), nullable=True)
    file_identifier = Column(String(512), nullable=True, index=True)
    camera_id = Column(Integer, ForeignKey("content_cameras.id", ondelete="SET NULL"), nullable=True)
    lens_id = Column(Integer, ForeignKey("content_lenses.id", ondelete="SET NULL"), nullable=True)
    film_type_id = Column(Integer, ForeignKey("content_film_types.id", ondelete="SET NULL"), nullable=True)
    location_id = Column(Integer, ForeignKey("location.id", ondelete="SET NULL"), nullable=True)

    camera = relationship("Camera", lazy="selectin")
    lens = relationship("Lens", lazy="selectin")
    film_type = relationship("FilmType", lazy="selectin")
    location = relationship("Location", lazy="selectin")
    people = relationship("Person", secondary=content_image_people, lazy="selectin", order_by="Person.person_name")

    __mapper_args__ = {"polymorphic_identity": ContentType.IMAGE.value}


class ContentText(Content):
    __tablename__ = "content_text"

    id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True)
    text_content = Column(Text, nullable=False)
    format_type = Column(String(20), nullable=True)

    __mapper_args__ = {"polymorphic_identity": ContentType.TEXT.value}


class ContentGif(Content):
    __tablename__ = "content_gif"

    id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True)
    title = Column(String(255), nullable=True)
    gif_url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024), nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    author = Column(String(255), nullable=True)
    create_date = Column(String(30), nullable=True)

    __mapper_args__ = {"polymorphic_identity": ContentType.GIF.value}


class ContentCollection(Content):
    """A collection nested inside another collection."""
    __tablename__ = "content_collection"

    id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True)
    referenced_collection_id = Column(
        Integer,
        ForeignKey("collection.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    __mapper_args__ = {"polymorphic_identity": ContentType.COLLECTION.value}


class Collection(Base):
    __tablename__ = "collection"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(30), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(150), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=True)
    location_id = Column(Integer, ForeignKey("location.id", ondelete="SET NULL"), nullable=True)
    collection_date = Column(Date, nullable=True)
    visible = Column(Boolean, nullable=False, default=True)
    display_mode = Column(String(20), nullable=True)
    cover_image_id = Column(Integer, ForeignKey("content.id", ondelete="SET NULL"), nullable=True)
    content_per_page = Column(Integer, nullable=False, default=50)
    total_content = Column(Integer, nullable=False, default=0)
    password_hash = Column(String(255), nullable=True)
    password_protected = Column(Boolean, nullable=False, default=False)
    created_at = _created_at()
    updated_at = _updated_at()

    location = relationship("Location", lazy="selectin")
    tags = relationship("Tag", secondary=collection_tags, lazy="selectin", order_by="Tag.tag_name")
    people = relationship("Person", secondary=collection_people, lazy="selectin", order_by="Person.person_name")

    @property
    def total_pages(self) -> int:
        if not self.total_content or not self.content_per_page:
            return 0
        return -(-self.total_content // self.content_per_page)


class CollectionContent(Base):
    """
    Join row placing one content item in one collection.
    The same content can sit in many collections with a different order and visibility in each.
    """
    __tablename__ = "collection_content"
    __table_args__ = (
        UniqueConstraint("collection_id", "content_id", name="uq_collection_content_pair"),
        Index("ix_collection_content_order", "collection_id", "order_index"),
    )

    id = Column(Integer, primary_key=True, index=True)
    collection_id = Column(Integer, ForeignKey("collection.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), nullable=False, index=True)
    order_index = Column(Integer, nullable=False)
    visible = Column(Boolean, nullable=False, default=True)
    created_at = _created_at()
    updated_at = _updated_at()
