"""
Telegram bot service.

Archives every post of the channel it administers into the shared store
(idempotent on edits, keyed by chat and message id), and answers a few
commands for checking the aggregated feeds from a chat.
"""
from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters
from newspulse.config import settings
from newspulse.feeds_config import CATEGORY_FEEDS
from newspulse.models.items import Category
from newspulse.services.logger import logger
from newspulse.services.shared_store import SharedStore

async def handle_channel_post(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Upsert a new or edited channel post into the archive table."""
    post = update.channel_post or update.edited_channel_post
    if post is None:
        return

    store: SharedStore = context.bot_data["shared_store"]
    text = post.text or post.caption or ""

    file_id = None
    media_type = None
    if post.photo:
        file_id = max(post.photo, key=lambda p: p.width * p.height).file_id
        media_type = "photo"
    elif post.video:
        file_id = post.video.file_id
        media_type = "video"
    elif post.animation:
        file_id = post.animation.file_id
        media_type = "animation"

    media_url = None
    if file_id:
        try:
            tg_file = await context.bot.get_file(file_id)
            media_url = tg_file.file_path
        except Exception as e:
            logger.warning(f"Could not resolve media for post {post.chat.id}/{post.message_id}: {e}")

    try:
        await store.upsert_archive_post(post.chat.id, post.message_id, text, media_url, media_type)
        logger.info(f"Archived channel post {post.chat.id}/{post.message_id} ({media_type or 'text'})")
    except Exception as e:
        logger.error(f"Archive upsert failed for {post.chat.id}/{post.message_id}: {e}")

async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Show available commands."""
    categories = ", ".join(c.value for c in Category)
    help_text = f"""
📰 **News Pulse Bot Commands**

/news <category> - Top headlines for a category
/sources - List configured news sources
/help - Show this help message

**Categories:** {categories}

Example: `/news Hyderabad`
"""
    await update.message.reply_text(help_text, parse_mode='Markdown')

async def cmd_sources(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """List configured news sources."""
    lines = ["📰 **Configured Sources:**\n"]
    for category, urls in CATEGORY_FEEDS.items():
        lines.append(f"**{category.value}:**")
        for url in urls:
            lines.append(f"  • {url[:60]}")
    lines.append(f"\n**{Category.AZAD_STUDIO.value}:**")
    lines.append(f"  • {settings.TELEGRAM_CHANNEL_URL}")
    await update.message.reply_text("\n".join(lines), parse_mode='Markdown')

async def cmd_news(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Show top headlines for one category."""
    if not context.args:
        await update.message.reply_text("Usage: /news <category>\nExample: /news Hyderabad")
        return

    category = Category.parse(" ".join(context.args))
    if category is None:
        await update.message.reply_text(f"❌ Unknown category: {' '.join(context.args)}")
        return

    aggregator = context.bot_data.get("aggregator")
    if aggregator is None:
        await update.message.reply_text("⚠️ News pipeline is not available.")
        return

    items = await aggregator.fetch_category(category)
    if not items:
        await update.message.reply_text(f"📭 No {category.value} news right now. Try again shortly.")
        return

    lines = [f"🗞 {category.value}\n"]
    for item in items[:5]:
        lines.append(f"• {item.title} ({item.source}, {item.timestamp})")
        if item.url != "#":
            lines.append(f"  {item.url}")
    await update.message.reply_text("\n".join(lines), disable_web_page_preview=True)

def create_telegram_bot(shared: SharedStore, aggregator=None) -> Application | None:
    """Create and configure the Telegram bot application."""
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("TELEGRAM_BOT_TOKEN not set. Bot will not start.")
        return None

    app = Application.builder().token(settings.TELEGRAM_BOT_TOKEN).build()
    app.bot_data["shared_store"] = shared
    app.bot_data["aggregator"] = aggregator

    app.add_handler(MessageHandler(filters.UpdateType.CHANNEL_POSTS, handle_channel_post))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("start", cmd_help))  # Same as help
    app.add_handler(CommandHandler("sources", cmd_sources))
    app.add_handler(CommandHandler("news", cmd_news))

    logger.info("Telegram Bot configured with channel archiver and command handlers.")
    return app
