import pytest

from portfolio.crud import collection_content as collection_content_crud
from portfolio.crud import content as content_crud
from portfolio.exceptions import ValidationError
from portfolio.models import Collection
from portfolio.schemas import CollectionUpdate, ReorderOperation
from portfolio.services import collection_service


async def _collection_with_texts(db, count):
    collection = Collection(
        type="PORTFOLIO", title="Work", slug="work", content_per_page=50, total_content=0,
        tags=[], people=[], location=None,
    )
    db.add(collection)
    await db.flush()
    texts = [await content_crud.create_text(db, f"block {i}") for i in range(count)]
    await collection_service.insert_content(db, collection.id, [t.id for t in texts])
    return collection, texts


async def _index_of(db, collection_id, content_id):
    association = await collection_content_crud.find_association(db, collection_id, content_id)
    return association.order_index


@pytest.mark.asyncio
async def test_reorder_applies_indices_exactly_as_given(db):
    collection, texts = await _collection_with_texts(db, 4)
    moved, other = texts[1], texts[3]

    updated = await collection_service.reorder_content(db, collection.id, [
        ReorderOperation(content_id=moved.id, new_order_index=2),
        ReorderOperation(content_id=other.id, new_order_index=0),
    ])

    assert updated == 2
    assert await _index_of(db, collection.id, moved.id) == 2
    assert await _index_of(db, collection.id, other.id) == 0
    # Untouched rows keep their old values, even where that duplicates an index
    assert await _index_of(db, collection.id, texts[0].id) == 0
    assert await _index_of(db, collection.id, texts[2].id) == 2


@pytest.mark.asyncio
async def test_reorder_by_old_index_resolves_before_writing(db):
    collection, texts = await _collection_with_texts(db, 3)

    # A swap: both lookups see the original positions
    await collection_service.reorder_content(db, collection.id, [
        ReorderOperation(old_order_index=0, new_order_index=2),
        ReorderOperation(old_order_index=2, new_order_index=0),
    ])

    assert await _index_of(db, collection.id, texts[0].id) == 2
    assert await _index_of(db, collection.id, texts[2].id) == 0


@pytest.mark.asyncio
async def test_reorder_unknown_old_index_is_rejected(db):
    collection, _ = await _collection_with_texts(db, 2)

    with pytest.raises(ValidationError):
        await collection_service.reorder_content(db, collection.id, [
            ReorderOperation(old_order_index=9, new_order_index=0),
        ])


@pytest.mark.asyncio
async def test_reorder_content_outside_collection_is_rejected(db):
    collection, _ = await _collection_with_texts(db, 2)
    stranger = await content_crud.create_text(db, "elsewhere")

    with pytest.raises(ValidationError):
        await collection_service.reorder_content(db, collection.id, [
            ReorderOperation(content_id=stranger.id, new_order_index=0),
        ])


def test_placeholder_resolution():
    created = [41, 42]
    assert collection_service.resolve_placeholder(7, created) == 7
    assert collection_service.resolve_placeholder(-1, created) == 41
    assert collection_service.resolve_placeholder(-2, created) == 42
    with pytest.raises(ValidationError):
        collection_service.resolve_placeholder(-3, created)


def test_operation_needs_exactly_one_reference():
    with pytest.raises(ValueError):
        ReorderOperation(new_order_index=0)
    with pytest.raises(ValueError):
        ReorderOperation(content_id=3, old_order_index=1, new_order_index=0)
    with pytest.raises(ValueError):
        ReorderOperation(content_id=0, new_order_index=0)


@pytest.mark.asyncio
async def test_update_places_new_text_blocks_with_placeholders(db):
    collection, texts = await _collection_with_texts(db, 2)

    await collection_service.update_collection(db, collection.id, CollectionUpdate(
        new_text_blocks=["intro", "outro"],
        reorder_operations=[
            ReorderOperation(content_id=-1, new_order_index=0),
            ReorderOperation(content_id=texts[0].id, new_order_index=1),
            ReorderOperation(content_id=texts[1].id, new_order_index=2),
            ReorderOperation(content_id=-2, new_order_index=3),
        ],
    ))

    associations = await collection_content_crud.list_by_collection(db, collection.id)
    contents = await content_crud.find_all_by_ids(db, [a.content_id for a in associations])
    text_by_id = {c.id: c.text_content for c in contents}

    assert [a.order_index for a in associations] == [0, 1, 2, 3]
    assert [text_by_id[a.content_id] for a in associations] == ["intro", "block 0", "block 1", "outro"]
    assert collection.total_content == 4


@pytest.mark.asyncio
async def test_reorder_endpoint(async_client, session_factory):
    async with session_factory() as db:
        collection, texts = await _collection_with_texts(db, 3)
        await db.commit()

    response = await async_client.put(f"/api/cms/collections/{collection.id}/reorder", json={
        "operations": [
            {"content_id": texts[2].id, "new_order_index": 0},
            {"content_id": texts[0].id, "new_order_index": 2},
        ]
    })
    assert response.status_code == 200
    assert response.json() == {"collection_id": collection.id, "updated": 2}

    response = await async_client.get(f"/api/cms/collections/{collection.id}")
    assert response.status_code == 200
    ids = [item["id"] for item in response.json()["content"]]
    assert ids == [texts[2].id, texts[1].id, texts[0].id]


@pytest.mark.asyncio
async def test_reorder_endpoint_rejects_missing_content(async_client, session_factory):
    async with session_factory() as db:
        collection, _ = await _collection_with_texts(db, 1)
        await db.commit()

    response = await async_client.put(f"/api/cms/collections/{collection.id}/reorder", json={
        "operations": [{"content_id": 9999, "new_order_index": 0}]
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"
