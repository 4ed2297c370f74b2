"""
EXIF and XMP metadata extraction with Pillow.

Camera settings live in the Exif sub-IFD; camera model, artist and rating in
IFD0. Lightroom-style flags (rating, grayscale conversion, film profiles) are
read from the raw XMP packet.
"""
import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from PIL import ExifTags, Image

logger = logging.getLogger(__name__)

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

_XMP_RATING = re.compile(rb'xmp:Rating(?:="|>)(-?\d+)')
_XMP_GRAYSCALE = re.compile(rb'crs:ConvertToGrayscale(?:="|>)True')
_XMP_MONOCHROME = re.compile(rb"Monochrome|BlackAndWhite")
_XMP_FILM = re.compile(rb"\bfilm\b", re.IGNORECASE)


@dataclass
class ImageMetadata:
    width: int
    height: int
    iso: Optional[int] = None
    author: Optional[str] = None
    rating: Optional[int] = None
    f_stop: Optional[str] = None
    shutter_speed: Optional[str] = None
    focal_length: Optional[str] = None
    lens: Optional[str] = None
    lens_serial_number: Optional[str] = None
    camera: Optional[str] = None
    body_serial_number: Optional[str] = None
    capture_date: Optional[datetime] = None
    black_and_white: bool = False
    is_film: bool = False

    @property
    def create_date(self) -> Optional[str]:
        return self.capture_date.isoformat() if self.capture_date else None


def format_f_stop(value: Any) -> Optional[str]:
    """2.8 -> 'f/2.8', 8.0 -> 'f/8'"""
    number = _to_float(value)
    if not number:
        return None
    return f"f/{round(number, 1):g}"


def format_shutter_speed(value: Any) -> Optional[str]:
    """0.004 -> '1/250'; exposures of a second or longer keep seconds, 2.0 -> '2s'"""
    seconds = _to_float(value)
    if not seconds:
        return None
    if seconds >= 1:
        return f"{round(seconds, 1):g}s"
    return f"1/{round(1 / seconds)}"


def format_focal_length(value: Any) -> Optional[str]:
    """50.0 -> '50 mm'"""
    millimetres = _to_float(value)
    if not millimetres:
        return None
    return f"{round(millimetres, 1):g} mm"


def parse_exif_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip().rstrip("\x00"), EXIF_DATE_FORMAT)
    except ValueError:
        logger.debug(f"Unparseable EXIF date: {value!r}")
        return None


def read_xmp_flags(xmp: Optional[bytes]) -> Dict[str, Any]:
    """Rating, black-and-white and film flags from a raw XMP packet."""
    flags: Dict[str, Any] = {"rating": None, "black_and_white": False, "is_film": False}
    if not xmp:
        return flags
    if isinstance(xmp, str):
        xmp = xmp.encode("utf-8")

    rating = _XMP_RATING.search(xmp)
    if rating:
        flags["rating"] = int(rating.group(1))
    flags["black_and_white"] = bool(_XMP_GRAYSCALE.search(xmp) or _XMP_MONOCHROME.search(xmp))
    flags["is_film"] = bool(_XMP_FILM.search(xmp))
    return flags


def extract_metadata(image_bytes: bytes) -> ImageMetadata:
    """
    Read dimensions, camera settings and XMP flags from an image.

    Missing or malformed EXIF degrades to pixel dimensions only.

    Raises:
        UnidentifiedImageError: if Pillow cannot open the bytes at all
    """
    with Image.open(io.BytesIO(image_bytes)) as image:
        width, height = image.size
        metadata = ImageMetadata(width=width, height=height)

        try:
            tags = _read_exif_tags(image)
        except Exception as e:
            logger.warning(f"Failed to read EXIF, keeping dimensions only: {str(e)}")
            tags = {}

        xmp = read_xmp_flags(image.info.get("xmp"))

    metadata.iso = _to_int(tags.get("ISOSpeedRatings") or tags.get("PhotographicSensitivity"))
    metadata.author = _to_text(tags.get("Artist"))
    metadata.f_stop = format_f_stop(tags.get("FNumber"))
    metadata.shutter_speed = format_shutter_speed(tags.get("ExposureTime"))
    metadata.focal_length = format_focal_length(tags.get("FocalLength") or tags.get("FocalLengthIn35mmFilm"))
    metadata.lens = _to_text(tags.get("LensModel"))
    metadata.lens_serial_number = _to_text(tags.get("LensSerialNumber"))
    metadata.camera = _to_text(tags.get("Model"))
    metadata.body_serial_number = _to_text(tags.get("BodySerialNumber"))
    metadata.capture_date = parse_exif_date(tags.get("DateTimeOriginal") or tags.get("DateTime"))

    rating = xmp["rating"] if xmp["rating"] is not None else _to_int(tags.get("Rating"))
    if rating is not None:
        metadata.rating = max(0, min(5, rating))
    metadata.black_and_white = xmp["black_and_white"]
    metadata.is_film = xmp["is_film"]
    return metadata


def _read_exif_tags(image: Image.Image) -> Dict[str, Any]:
    exif = image.getexif()
    tags: Dict[str, Any] = {}
    if not exif:
        return tags

    for tag_id, value in exif.items():
        tags[ExifTags.TAGS.get(tag_id, tag_id)] = value
    for tag_id, value in exif.get_ifd(ExifTags.IFD.Exif).items():
        tags[ExifTags.TAGS.get(tag_id, tag_id)] = value
    return tags


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        if isinstance(value, tuple) and len(value) == 2:
            return value[0] / value[1] if value[1] else None
        return float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, tuple):
        value = value[0] if value else None
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip().strip("\x00").strip()
    return text or None
