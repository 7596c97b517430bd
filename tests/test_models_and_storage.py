import pytest
from pydantic import ValidationError

from newspulse.models.items import Category, ContentItem, EnhancedContent, MediaType
from newspulse.services.background import BackgroundTasks


def test_category_parse():
    assert Category.parse("azad studio") is Category.AZAD_STUDIO
    assert Category.parse("AZAD_STUDIO") is Category.AZAD_STUDIO
    assert Category.parse(" Sports ") is Category.SPORTS
    assert Category.parse("weather") is None


def test_content_item_round_trips_through_camel_case_cache_shape():
    item = ContentItem(
        id="tg_db_1",
        title="Update",
        source="Azad Studio (Archive)",
        description="d",
        content="d",
        category=Category.AZAD_STUDIO,
        video_url="https://x.test/v.mp4",
        media_type=MediaType.VIDEO,
    )

    cached = item.to_cache_dict()

    assert cached["videoUrl"] == "https://x.test/v.mp4"
    assert cached["mediaType"] == "video"
    assert cached["timestamp"] == "Recent"
    assert ContentItem.model_validate(cached) == item


def test_content_item_is_frozen():
    item = ContentItem(id="a", title="t", source="s", description="d", content="d", category=Category.INDIA)

    with pytest.raises(ValidationError):
        item.title = "changed"


def test_unavailable_payload_reuses_description():
    content = EnhancedContent.unavailable("Short description")

    assert content.available is False
    assert content.full_article == "Short description"
    assert content.summary_short == "Short description"
    assert content.summary_roman_urdu == "Tarjuma dastiyab nahi hai."


def test_unavailable_payload_without_description():
    content = EnhancedContent.unavailable("")

    assert content.full_article.startswith("Content currently unavailable")


@pytest.mark.asyncio
async def test_local_store_round_trip(local_db):
    assert await local_db.set_value("news_pulse_cache_India", {"timestamp": 1, "articles": []})

    assert await local_db.get_value("news_pulse_cache_India") == {"timestamp": 1, "articles": []}
    assert await local_db.get_value("missing") is None
    entries = await local_db.list_entries("news_pulse_cache_")
    assert [key for key, _ in entries] == ["news_pulse_cache_India"]


@pytest.mark.asyncio
async def test_local_store_ignores_corrupt_value(local_db):
    async with local_db.get_connection() as conn:
        await conn.execute("INSERT INTO local_cache (key, value) VALUES (?, ?)", ("bad", "{not json"))
        await conn.commit()

    assert await local_db.get_value("bad") is None


@pytest.mark.asyncio
async def test_background_failures_are_contained():
    tasks = BackgroundTasks()

    async def fails():
        raise RuntimeError("write rejected")

    async def succeeds():
        return "ok"

    tasks.spawn(fails(), name="fails")
    ok = tasks.spawn(succeeds(), name="succeeds")
    await tasks.drain()

    assert tasks.pending == 0
    assert ok.result() == "ok"
