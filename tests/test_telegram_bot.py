from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from newspulse.models.items import Category, ContentItem
from newspulse.services.telegram_bot import cmd_news, cmd_sources, handle_channel_post


def channel_post(message_id=5, text=None, caption=None, photo=(), video=None, animation=None):
    return SimpleNamespace(
        chat=SimpleNamespace(id=-1001),
        message_id=message_id,
        text=text,
        caption=caption,
        photo=photo,
        video=video,
        animation=animation,
    )


def context_for(shared, file_path="https://api.telegram.org/file/botTOKEN/photos/file_1.jpg"):
    context = MagicMock()
    context.bot_data = {"shared_store": shared}
    context.bot.get_file = AsyncMock(return_value=SimpleNamespace(file_path=file_path))
    return context


@pytest.mark.asyncio
async def test_photo_post_archives_largest_size(shared):
    photo = (
        SimpleNamespace(file_id="small", width=90, height=60),
        SimpleNamespace(file_id="large", width=1280, height=853),
        SimpleNamespace(file_id="medium", width=320, height=213),
    )
    update = SimpleNamespace(channel_post=channel_post(caption="Eid Mubarak", photo=photo), edited_channel_post=None)
    context = context_for(shared)

    await handle_channel_post(update, context)

    context.bot.get_file.assert_awaited_once_with("large")
    row = shared.archive[(-1001, 5)]
    assert row["message"] == "Eid Mubarak"
    assert row["media_type"] == "photo"
    assert row["media_url"] == "https://api.telegram.org/file/botTOKEN/photos/file_1.jpg"


@pytest.mark.asyncio
async def test_video_and_animation_posts(shared):
    context = context_for(shared, file_path="https://api.telegram.org/file/botTOKEN/videos/v.mp4")

    video_post = channel_post(message_id=6, video=SimpleNamespace(file_id="vid"))
    await handle_channel_post(SimpleNamespace(channel_post=video_post, edited_channel_post=None), context)
    gif_post = channel_post(message_id=7, animation=SimpleNamespace(file_id="gif"))
    await handle_channel_post(SimpleNamespace(channel_post=gif_post, edited_channel_post=None), context)

    assert shared.archive[(-1001, 6)]["media_type"] == "video"
    assert shared.archive[(-1001, 7)]["media_type"] == "animation"


@pytest.mark.asyncio
async def test_edit_overwrites_same_row(shared):
    context = context_for(shared)

    original = channel_post(message_id=8, text="Frist draft")
    await handle_channel_post(SimpleNamespace(channel_post=original, edited_channel_post=None), context)
    edited = channel_post(message_id=8, text="First draft")
    await handle_channel_post(SimpleNamespace(channel_post=None, edited_channel_post=edited), context)

    assert len(shared.archive) == 1
    assert shared.archive[(-1001, 8)]["message"] == "First draft"
    assert shared.archive[(-1001, 8)]["media_type"] is None


@pytest.mark.asyncio
async def test_media_lookup_failure_still_archives_text(shared):
    context = context_for(shared)
    context.bot.get_file = AsyncMock(side_effect=RuntimeError("file is too big"))
    post = channel_post(message_id=9, caption="Long video", video=SimpleNamespace(file_id="huge"))

    await handle_channel_post(SimpleNamespace(channel_post=post, edited_channel_post=None), context)

    assert shared.archive[(-1001, 9)]["media_url"] is None
    assert shared.archive[(-1001, 9)]["message"] == "Long video"


@pytest.mark.asyncio
async def test_store_failure_is_logged_not_raised(shared):
    shared.fail_writes = True
    post = channel_post(message_id=10, text="hello")

    await handle_channel_post(SimpleNamespace(channel_post=post, edited_channel_post=None), context_for(shared))

    assert shared.archive == {}


@pytest.mark.asyncio
async def test_news_command_lists_headlines():
    items = [
        ContentItem(id="rss_1", title="Metro opens", source="THEHINDU", timestamp="03:30 PM",
                    description="d", content="d", category=Category.HYDERABAD, url="https://news.test/metro"),
    ]
    aggregator = MagicMock()
    aggregator.fetch_category = AsyncMock(return_value=items)
    update = MagicMock()
    update.message.reply_text = AsyncMock()
    context = MagicMock(args=["hyderabad"], bot_data={"aggregator": aggregator})

    await cmd_news(update, context)

    aggregator.fetch_category.assert_awaited_once_with(Category.HYDERABAD)
    reply = update.message.reply_text.await_args.args[0]
    assert "Metro opens" in reply
    assert "https://news.test/metro" in reply


@pytest.mark.asyncio
async def test_news_command_rejects_unknown_category():
    update = MagicMock()
    update.message.reply_text = AsyncMock()
    context = MagicMock(args=["Mars"], bot_data={"aggregator": MagicMock()})

    await cmd_news(update, context)

    assert "Unknown category" in update.message.reply_text.await_args.args[0]


@pytest.mark.asyncio
async def test_sources_command_lists_feeds():
    update = MagicMock()
    update.message.reply_text = AsyncMock()

    await cmd_sources(update, MagicMock())

    reply = update.message.reply_text.await_args.args[0]
    assert "Hyderabad" in reply
    assert "Azad Studio" in reply
