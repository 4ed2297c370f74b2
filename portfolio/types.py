"""
Enumerations shared by models, schemas and services.
"""
import enum
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ContentType(str, enum.Enum):
    IMAGE = "IMAGE"
    TEXT = "TEXT"
    GIF = "GIF"
    COLLECTION = "COLLECTION"


class CollectionType(str, enum.Enum):
    BLOG = "BLOG"
    ART_GALLERY = "ART_GALLERY"
    CLIENT_GALLERY = "CLIENT_GALLERY"
    PORTFOLIO = "PORTFOLIO"

    @property
    def display_name(self) -> str:
        return _COLLECTION_DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "CollectionType":
        """Parse a collection type, defaulting to PORTFOLIO for unknown values."""
        if value is None:
            logger.warning("Null CollectionType value, defaulting to PORTFOLIO")
            return cls.PORTFOLIO
        try:
            return cls(value.upper())
        except ValueError:
            logger.warning(f"Invalid CollectionType value: {value}, defaulting to PORTFOLIO")
            return cls.PORTFOLIO


_COLLECTION_DISPLAY_NAMES = {
    CollectionType.BLOG: "Blog",
    CollectionType.ART_GALLERY: "Art Gallery",
    CollectionType.CLIENT_GALLERY: "Client Gallery",
    CollectionType.PORTFOLIO: "Portfolio",
}


class DisplayMode(str, enum.Enum):
    CHRONOLOGICAL = "CHRONOLOGICAL"
    ORDERED = "ORDERED"


class FilmFormat(str, enum.Enum):
    MM_35 = "MM_35"
    MM_120 = "MM_120"

    @property
    def display_name(self) -> str:
        return "35mm" if self is FilmFormat.MM_35 else "120"


class TextFormType(str, enum.Enum):
    MARKDOWN = "markdown"
    HTML = "html"
    PLAIN = "plain"
    JS = "js"
    PY = "py"
    SQL = "sql"
    JAVA = "java"
    TS = "ts"
    TF = "tf"
    YML = "yml"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TextFormType"]:
        """Match by enum name or display value, case-insensitively."""
        if value is None:
            return None
        for form in cls:
            if form.name == value.upper() or form.value == value.lower():
                return form
        logger.warning(f"Invalid TextFormType value: {value}")
        return None
