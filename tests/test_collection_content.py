import pytest

from portfolio.crud import collection_content as collection_content_crud
from portfolio.crud import content as content_crud
from portfolio.models import Collection
from portfolio.services import collection_service


async def _collection(db, slug="journal"):
    collection = Collection(
        type="BLOG", title=slug.title(), slug=slug, content_per_page=50, total_content=0,
        tags=[], people=[], location=None,
    )
    db.add(collection)
    await db.flush()
    return collection


async def _texts(db, count):
    return [await content_crud.create_text(db, f"block {i}") for i in range(count)]


async def _order(db, collection_id):
    associations = await collection_content_crud.list_by_collection(db, collection_id)
    return [(a.content_id, a.order_index) for a in associations]


@pytest.mark.asyncio
async def test_attach_appends_dense_indices(db):
    collection = await _collection(db)
    texts = await _texts(db, 3)
    for text in texts:
        await collection_content_crud.attach_content(db, collection.id, text.id)

    assert await _order(db, collection.id) == [(texts[0].id, 0), (texts[1].id, 1), (texts[2].id, 2)]
    assert await collection_content_crud.next_order_index(db, collection.id) == 3


@pytest.mark.asyncio
async def test_attach_same_pair_twice_returns_existing_row(db):
    collection = await _collection(db)
    [text] = await _texts(db, 1)
    first = await collection_content_crud.attach_content(db, collection.id, text.id)
    second = await collection_content_crud.attach_content(db, collection.id, text.id, order_index=9)

    assert first.id == second.id
    assert await collection_content_crud.count_by_collection(db, collection.id) == 1


@pytest.mark.asyncio
async def test_insert_at_position_shifts_later_items(db):
    collection = await _collection(db)
    texts = await _texts(db, 4)
    await collection_service.insert_content(db, collection.id, [t.id for t in texts[:3]])

    await collection_service.insert_content(db, collection.id, [texts[3].id], insert_at=1)

    assert await _order(db, collection.id) == [
        (texts[0].id, 0), (texts[3].id, 1), (texts[1].id, 2), (texts[2].id, 3)
    ]


@pytest.mark.asyncio
async def test_insert_past_end_appends(db):
    collection = await _collection(db)
    texts = await _texts(db, 2)
    await collection_service.insert_content(db, collection.id, [texts[0].id])
    await collection_service.insert_content(db, collection.id, [texts[1].id], insert_at=40)

    assert await _order(db, collection.id) == [(texts[0].id, 0), (texts[1].id, 1)]


@pytest.mark.asyncio
async def test_shift_only_touches_range(db):
    collection = await _collection(db)
    texts = await _texts(db, 4)
    await collection_service.insert_content(db, collection.id, [t.id for t in texts])

    shifted = await collection_content_crud.shift_order_indices(db, collection.id, 1, 2, 10)

    assert shifted == 2
    assert [index for _, index in await _order(db, collection.id)] == [0, 3, 11, 12]


@pytest.mark.asyncio
async def test_detach_leaves_gap_and_keeps_content(db):
    collection = await _collection(db)
    texts = await _texts(db, 3)
    await collection_service.insert_content(db, collection.id, [t.id for t in texts])

    removed = await collection_content_crud.detach_content(db, collection.id, [texts[1].id])

    assert removed == 1
    assert await _order(db, collection.id) == [(texts[0].id, 0), (texts[2].id, 2)]
    assert await content_crud.find_by_id(db, texts[1].id) is not None


@pytest.mark.asyncio
async def test_compact_renormalizes_after_gap(db):
    collection = await _collection(db)
    texts = await _texts(db, 3)
    await collection_service.insert_content(db, collection.id, [t.id for t in texts])
    await collection_content_crud.detach_content(db, collection.id, [texts[0].id])

    changed = await collection_content_crud.compact_order(db, collection.id)

    assert changed == 2
    assert await _order(db, collection.id) == [(texts[1].id, 0), (texts[2].id, 1)]
    assert await collection_content_crud.compact_order(db, collection.id) == 0


@pytest.mark.asyncio
async def test_single_row_updates_report_missing_rows(db):
    collection = await _collection(db)

    outcome = await collection_content_crud.set_order_index(db, 12345, 3)
    assert outcome.found is False
    assert outcome.rows_affected == 0

    outcome = await collection_content_crud.set_order_index_for_content(db, collection.id, 999, 0)
    assert not outcome.found

    outcome = await collection_content_crud.set_visible(db, 12345, False)
    assert not outcome.found


@pytest.mark.asyncio
async def test_visible_only_listing_skips_hidden(db):
    collection = await _collection(db)
    texts = await _texts(db, 2)
    await collection_service.insert_content(db, collection.id, [texts[0].id])
    await collection_service.insert_content(db, collection.id, [texts[1].id], visible=False)

    visible = await collection_content_crud.list_by_collection(db, collection.id, visible_only=True)

    assert [a.content_id for a in visible] == [texts[0].id]
    assert await collection_content_crud.count_by_collection(db, collection.id) == 2
    assert await collection_content_crud.count_by_collection(db, collection.id, visible_only=True) == 1


@pytest.mark.asyncio
async def test_same_content_in_two_collections_is_independent(db):
    first = await _collection(db, "first")
    second = await _collection(db, "second")
    texts = await _texts(db, 2)
    await collection_service.insert_content(db, first.id, [texts[0].id, texts[1].id])
    await collection_service.insert_content(db, second.id, [texts[1].id])

    await collection_service.update_association(db, second.id, texts[1].id, visible=False, order_index=7)

    in_first = await collection_content_crud.find_association(db, first.id, texts[1].id)
    in_second = await collection_content_crud.find_association(db, second.id, texts[1].id)
    assert (in_first.order_index, in_first.visible) == (1, True)
    assert (in_second.order_index, in_second.visible) == (7, False)
