import io
from datetime import date

import pytest
from PIL import ExifTags, Image
from sqlalchemy import func, select

from conftest import make_image_bytes
from portfolio.exceptions import ValidationError
from portfolio.models import content_image_people, content_tags
from portfolio.services import storage_service
from portfolio.services.image_processing import file_identifier_for, safe_filename
from portfolio.utils.exif import (
    extract_metadata,
    format_f_stop,
    format_focal_length,
    format_shutter_speed,
    parse_exif_date,
    read_xmp_flags,
)
from portfolio.utils.image_converter import convert_to_webp, detect_format, fit_within, gif_first_frame_thumbnail


def test_exposure_formatting():
    assert format_f_stop(2.8) == "f/2.8"
    assert format_f_stop(8.0) == "f/8"
    assert format_f_stop((28, 10)) == "f/2.8"
    assert format_f_stop(None) is None
    assert format_shutter_speed(0.004) == "1/250"
    assert format_shutter_speed(2.0) == "2s"
    assert format_focal_length(50.0) == "50 mm"
    assert format_focal_length(0) is None


def test_exif_dates():
    assert parse_exif_date("2024:05:17 18:30:05").isoformat() == "2024-05-17T18:30:05"
    assert parse_exif_date("0000:00:00 00:00:00") is None
    assert parse_exif_date(None) is None


def test_xmp_flags():
    xmp = (
        b'<x:xmpmeta><rdf:Description xmp:Rating="4" crs:ConvertToGrayscale="True" '
        b'crs:CameraProfile="Film Standard"/></x:xmpmeta>'
    )
    assert read_xmp_flags(xmp) == {"rating": 4, "black_and_white": True, "is_film": True}
    assert read_xmp_flags(b'<rdf:Description xmp:Rating="2"/>') == {
        "rating": 2, "black_and_white": False, "is_film": False
    }
    assert read_xmp_flags(None)["rating"] is None


def test_extract_metadata_reads_exif():
    exif = Image.Exif()
    exif[ExifTags.Base.Model] = "X100V"
    exif[ExifTags.Base.Artist] = "Jane Doe"
    exif[ExifTags.IFD.Exif] = {
        ExifTags.Base.FNumber: 2.0,
        ExifTags.Base.ExposureTime: 0.008,
        ExifTags.Base.ISOSpeedRatings: 400,
        ExifTags.Base.DateTimeOriginal: "2024:05:17 18:30:05",
    }

    metadata = extract_metadata(make_image_bytes(size=(120, 80), exif=exif))

    assert (metadata.width, metadata.height) == (120, 80)
    assert metadata.camera == "X100V"
    assert metadata.author == "Jane Doe"
    assert metadata.f_stop == "f/2"
    assert metadata.shutter_speed == "1/125"
    assert metadata.iso == 400
    assert metadata.create_date == "2024-05-17T18:30:05"


def test_extract_metadata_without_exif_keeps_dimensions():
    metadata = extract_metadata(make_image_bytes(size=(30, 20), fmt="PNG"))
    assert (metadata.width, metadata.height) == (30, 20)
    assert metadata.camera is None
    assert metadata.rating is None


def test_fit_within():
    assert fit_within(5000, 2500, 2500) == (2500, 1250)
    assert fit_within(1000, 4000, 2000) == (500, 2000)
    assert fit_within(800, 600, 2500) == (800, 600)


@pytest.mark.asyncio
async def test_convert_to_webp_downscales():
    converted = await convert_to_webp(make_image_bytes(size=(400, 200)), max_dimension=100)

    assert (converted.width, converted.height) == (100, 50)
    assert converted.content_type == "image/webp"
    with Image.open(io.BytesIO(converted.data)) as image:
        assert image.format == "WEBP"
        assert image.size == (100, 50)


@pytest.mark.asyncio
async def test_convert_rejects_unsupported_and_garbage(gif_bytes):
    with pytest.raises(ValidationError):
        await convert_to_webp(gif_bytes)
    with pytest.raises(ValidationError):
        detect_format(b"definitely not an image")


@pytest.mark.asyncio
async def test_gif_thumbnail(gif_bytes):
    thumbnail = await gif_first_frame_thumbnail(gif_bytes)
    assert (thumbnail.width, thumbnail.height) == (32, 32)


def test_storage_keys_and_urls():
    key = storage_service.build_object_key("Image", "Web", "DSC_0001.webp", date(2024, 5, 17))
    assert key == "Image/Web/2024/05/DSC_0001.webp"
    assert storage_service.public_url(key) == "https://cdn.test/Image/Web/2024/05/DSC_0001.webp"
    assert storage_service.key_from_url("https://cdn.test/Image/Web/2024/05/DSC_0001.webp") == key
    assert storage_service.key_from_url("https://elsewhere.test/file.jpg") is None


def test_filenames():
    assert safe_filename("../my photo (1).JPG") == "my_photo_1_.JPG"
    assert safe_filename("") == "upload"
    assert file_identifier_for(date(2024, 5, 17), "a.jpg") == "2024-05-17/a.jpg"


async def _collection_id(async_client, title="Uploads"):
    response = await async_client.post("/api/cms/collections", json={"type": "PORTFOLIO", "title": title})
    return response.json()["id"]


@pytest.mark.asyncio
async def test_upload_images_and_gif(async_client, storage, image_bytes, gif_bytes):
    collection_id = await _collection_id(async_client)

    response = await async_client.post(
        f"/api/cms/collections/{collection_id}/images",
        files=[
            ("files", ("sunset.jpg", image_bytes, "image/jpeg")),
            ("files", ("notes.txt", b"plain text", "text/plain")),
            ("files", ("loop.gif", gif_bytes, "image/gif")),
        ],
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert [item["content_type"] for item in data["uploaded"]] == ["IMAGE", "GIF"]
    assert [item["order_index"] for item in data["uploaded"]] == [0, 1]
    assert [error["filename"] for error in data["errors"]] == ["notes.txt"]

    image = data["uploaded"][0]
    assert image["title"] == "sunset"
    assert image["image_url_web"].startswith("https://cdn.test/Image/Web/")
    assert image["image_url_web"].endswith("/sunset.webp")
    assert image["author"]

    keys = sorted(storage.objects)
    assert any(k.startswith("Image/Original/") and k.endswith("/sunset.jpg") for k in keys)
    assert any(k.startswith("Gif/Web/") and k.endswith("/loop.gif") for k in keys)
    assert any(k.startswith("Gif/Thumbnail/") and k.endswith("/loop.webp") for k in keys)

    page = (await async_client.get(f"/api/cms/collections/{collection_id}")).json()
    assert page["collection"]["total_content"] == 2


@pytest.mark.asyncio
async def test_duplicate_upload_fails(async_client, image_bytes):
    collection_id = await _collection_id(async_client)
    url = f"/api/cms/collections/{collection_id}/images"

    first = await async_client.post(url, files=[("files", ("dup.jpg", image_bytes, "image/jpeg"))])
    assert first.status_code == 201

    second = await async_client.post(url, files=[("files", ("dup.jpg", image_bytes, "image/jpeg"))])
    assert second.status_code == 500
    body = second.json()
    assert body["error"] == "Upload failed"
    assert body["detail"][0]["filename"] == "dup.jpg"


@pytest.mark.asyncio
async def test_update_images_reports_rejected_items(async_client, image_bytes):
    collection_id = await _collection_id(async_client)
    uploaded = await async_client.post(
        f"/api/cms/collections/{collection_id}/images",
        files=[("files", ("portrait.jpg", image_bytes, "image/jpeg"))],
    )
    image_id = uploaded.json()["uploaded"][0]["id"]

    response = await async_client.put("/api/cms/images", json={"images": [
        {
            "id": image_id,
            "title": "Portrait",
            "rating": 5,
            "camera_name": "Leica M6",
            "tags": {"new_values": ["people"]},
            "people": {"new_values": ["Ana"]},
        },
        {"id": 999999, "title": "ghost"},
    ]})
    assert response.status_code == 200
    result = response.json()
    assert result["succeeded"] == [image_id]
    assert [error["id"] for error in result["errors"]] == [999999]

    response = await async_client.put("/api/cms/images", json={"images": [
        {"id": image_id, "film_format": "MM_35", "is_film": False},
    ]})
    assert response.json()["errors"][0]["id"] == image_id

    page = (await async_client.get(f"/api/cms/collections/{collection_id}")).json()
    image = page["content"][0]
    assert image["title"] == "Portrait"
    assert image["rating"] == 5
    assert image["camera"]["camera_name"] == "Leica M6"
    assert [tag["tag_name"] for tag in image["tags"]] == ["people"]
    assert [person["person_name"] for person in image["people"]] == ["Ana"]
    assert image["film_format"] is None


@pytest.mark.asyncio
async def test_delete_content_removes_media_and_memberships(async_client, storage, image_bytes):
    collection_id = await _collection_id(async_client)
    uploaded = await async_client.post(
        f"/api/cms/collections/{collection_id}/images",
        files=[("files", ("gone.jpg", image_bytes, "image/jpeg"))],
    )
    image_id = uploaded.json()["uploaded"][0]["id"]
    await async_client.put(f"/api/cms/collections/{collection_id}", json={"cover_image_id": image_id})

    response = await async_client.request("DELETE", "/api/cms/content", json={"content_ids": [image_id, 424242]})
    assert response.status_code == 200
    assert response.json()["succeeded"] == [image_id]
    assert [error["id"] for error in response.json()["errors"]] == [424242]

    assert any(key.endswith("/gone.webp") for key in storage.deleted)
    assert any(key.endswith("/gone.jpg") for key in storage.deleted)

    page = (await async_client.get(f"/api/cms/collections/{collection_id}")).json()
    assert page["content"] == []
    assert page["collection"]["cover_image"] is None
    assert page["collection"]["total_content"] == 0


async def _upload(async_client, collection_id, *names, data):
    response = await async_client.post(
        f"/api/cms/collections/{collection_id}/images",
        files=[("files", (name, data, "image/jpeg")) for name in names],
    )
    assert response.status_code == 201, response.text
    return [item["id"] for item in response.json()["uploaded"]]


@pytest.mark.asyncio
async def test_update_images_rejects_null_flags_per_image(async_client, image_bytes):
    collection_id = await _collection_id(async_client)
    first, second = await _upload(async_client, collection_id, "a.jpg", "b.jpg", data=image_bytes)

    response = await async_client.put("/api/cms/images", json={"images": [
        {"id": first, "black_and_white": None},
        {"id": second, "is_film": None},
        {"id": 31337, "title": "ghost"},
    ]})
    assert response.status_code == 200
    result = response.json()
    assert result["succeeded"] == []
    assert [error["id"] for error in result["errors"]] == [first, second, 31337]

    response = await async_client.put("/api/cms/images", json={"images": [
        {"id": first, "black_and_white": None},
        {"id": second, "title": "Kept", "black_and_white": True},
    ]})
    assert response.status_code == 200
    assert response.json()["succeeded"] == [second]

    page = (await async_client.get(f"/api/cms/collections/{collection_id}")).json()
    by_id = {item["id"]: item for item in page["content"]}
    assert by_id[first]["black_and_white"] is False
    assert by_id[second]["title"] == "Kept"
    assert by_id[second]["black_and_white"] is True


@pytest.mark.asyncio
async def test_rejected_image_update_creates_no_vocabulary(async_client, no_auth_client, image_bytes):
    collection_id = await _collection_id(async_client)
    [image_id] = await _upload(async_client, collection_id, "c.jpg", data=image_bytes)

    response = await async_client.put("/api/cms/images", json={"images": [{
        "id": image_id,
        "camera_name": "Brand New Camera",
        "lens_name": "Brand New Lens",
        "location": {"new_value": "Nowhere"},
        "tags": {"prev": [987654], "new_values": ["fresh"]},
    }]})
    assert response.status_code == 200
    assert [error["id"] for error in response.json()["errors"]] == [image_id]

    assert (await no_auth_client.get("/api/cameras")).json() == []
    assert (await no_auth_client.get("/api/lenses")).json() == []
    assert (await no_auth_client.get("/api/locations")).json() == []
    assert (await no_auth_client.get("/api/tags")).json() == []


@pytest.mark.asyncio
async def test_delete_image_removes_tag_and_people_links(async_client, session_factory, image_bytes):
    collection_id = await _collection_id(async_client)
    [image_id] = await _upload(async_client, collection_id, "linked.jpg", data=image_bytes)
    response = await async_client.put("/api/cms/images", json={"images": [{
        "id": image_id,
        "tags": {"new_values": ["street"]},
        "people": {"new_values": ["Ana"]},
    }]})
    assert response.json()["succeeded"] == [image_id]

    async def link_counts():
        async with session_factory() as db:
            tags = await db.scalar(select(func.count()).select_from(content_tags))
            people = await db.scalar(select(func.count()).select_from(content_image_people))
            return tags, people

    assert await link_counts() == (1, 1)

    response = await async_client.request("DELETE", "/api/cms/content", json={"content_ids": [image_id]})
    assert response.json()["succeeded"] == [image_id]
    assert await link_counts() == (0, 0)
