import pytest

from portfolio.crud import content as content_crud
from portfolio.models import Collection, ContentGif, ContentImage, ContentText
from portfolio.services import collection_service
from portfolio.services.content_mapping import associations_to_responses


async def _collection(db, slug, title=None, **fields):
    collection = Collection(
        type=fields.pop("type", "PORTFOLIO"),
        title=title or slug.title(),
        slug=slug,
        content_per_page=fields.pop("content_per_page", 50),
        total_content=0,
        tags=[],
        people=[],
        location=None,
        **fields,
    )
    db.add(collection)
    await db.flush()
    return collection


async def _image(db, title):
    return await content_crud.create_image(
        db,
        title=title,
        image_width=1200,
        image_height=800,
        image_url_web=f"https://cdn.test/Image/Web/2024/05/{title}.webp",
        file_identifier=f"2024-05-01/{title}.jpg",
    )


async def _mixed_collection(db):
    collection = await _collection(db, "mixed")
    first = await _image(db, "first")
    text = await content_crud.create_text(db, "Some words", "markdown")
    gif = await content_crud.create_gif(db, title="loop", gif_url="https://cdn.test/Gif/Web/2024/05/loop.gif")
    second = await _image(db, "second")
    await collection_service.insert_content(db, collection.id, [first.id, text.id, gif.id, second.id])
    await collection_service.refresh_total_content(db, collection)
    return collection, [first, text, gif, second]


@pytest.mark.asyncio
async def test_find_all_by_ids_returns_typed_content(db):
    _, items = await _mixed_collection(db)

    loaded = await content_crud.find_all_by_ids(db, [item.id for item in items])
    by_id = {content.id: content for content in loaded}

    assert len(loaded) == 4
    assert isinstance(by_id[items[0].id], ContentImage)
    assert isinstance(by_id[items[1].id], ContentText)
    assert isinstance(by_id[items[2].id], ContentGif)
    assert isinstance(by_id[items[3].id], ContentImage)


@pytest.mark.asyncio
async def test_find_all_by_ids_skips_missing_ids(db):
    _, items = await _mixed_collection(db)

    loaded = await content_crud.find_all_by_ids(db, [items[1].id, 98765])

    assert [content.id for content in loaded] == [items[1].id]


@pytest.mark.asyncio
async def test_page_keeps_association_order_across_types(db):
    collection, items = await _mixed_collection(db)

    page = await collection_service.get_collection_page(db, collection.slug)
    responses = await associations_to_responses(db, page.associations)

    assert [r.id for r in responses] == [item.id for item in items]
    assert [r.content_type for r in responses] == ["IMAGE", "TEXT", "GIF", "IMAGE"]
    assert [r.order_index for r in responses] == [0, 1, 2, 3]
    assert responses[1].text_content == "Some words"
    assert responses[2].gif_url.endswith("loop.gif")


@pytest.mark.asyncio
async def test_nested_collection_card(db):
    parent = await _collection(db, "parent")
    child = await _collection(db, "child", title="Child Work", description="Nested")
    cover = await _image(db, "cover")
    child.cover_image_id = cover.id
    await db.flush()
    reference = await content_crud.get_or_create_collection_reference(db, child.id)
    await collection_service.insert_content(db, parent.id, [reference.id])

    page = await collection_service.get_collection_page(db, parent.slug)
    [card] = await associations_to_responses(db, page.associations)

    assert card.content_type == "COLLECTION"
    assert card.referenced_collection_id == child.id
    assert card.slug == "child"
    assert card.title == "Child Work"
    assert card.cover_image_url == cover.image_url_web


@pytest.mark.asyncio
async def test_public_page_endpoint_paginates(no_auth_client, session_factory):
    async with session_factory() as db:
        collection, items = await _mixed_collection(db)
        await db.commit()

    response = await no_auth_client.get("/api/collections/mixed", params={"page": 1, "size": 3})
    assert response.status_code == 200
    data = response.json()
    assert data["collection"]["slug"] == "mixed"
    assert data["collection"]["total_content"] == 4
    assert data["pagination"] == {"page": 1, "size": 3, "total_items": 4, "total_pages": 2}
    assert [item["id"] for item in data["content"]] == [items[3].id]


@pytest.mark.asyncio
async def test_public_page_hides_hidden_content(no_auth_client, session_factory):
    async with session_factory() as db:
        collection, items = await _mixed_collection(db)
        await collection_service.update_association(db, collection.id, items[1].id, visible=False)
        await db.commit()

    response = await no_auth_client.get("/api/collections/mixed")
    assert response.status_code == 200
    content = response.json()["content"]
    assert [item["content_type"] for item in content] == ["IMAGE", "GIF", "IMAGE"]


@pytest.mark.asyncio
async def test_hidden_collection_is_not_public(no_auth_client, async_client, session_factory):
    async with session_factory() as db:
        collection = await _collection(db, "draft", visible=False)
        await db.commit()

    response = await no_auth_client.get("/api/collections/draft")
    assert response.status_code == 404

    response = await async_client.get(f"/api/cms/collections/{collection.id}")
    assert response.status_code == 200
    assert response.json()["collection"]["visible"] is False


@pytest.mark.asyncio
async def test_image_library_listing(no_auth_client, session_factory):
    async with session_factory() as db:
        await _mixed_collection(db)
        await db.commit()

    response = await no_auth_client.get("/api/images", params={"size": 10})
    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total_items"] == 2
    assert {image["title"] for image in data["images"]} == {"first", "second"}
