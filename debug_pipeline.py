import asyncio
import sys
from newspulse.models.items import Category
from newspulse.services.background import BackgroundTasks
from newspulse.services.database import db
from newspulse.services.logger import logger
from newspulse.services.shared_store import shared_store
from newspulse.workflows.pipeline import create_aggregator

async def main(category_name: str):
    category = Category.parse(category_name)
    if category is None:
        print(f"Unknown category '{category_name}'. Choose from: {', '.join(c.value for c in Category)}")
        return

    print(f">>> Debug fetch for {category.value}...")
    await db.init()
    await shared_store.connect()

    background = BackgroundTasks()
    aggregator = create_aggregator(local=db, shared=shared_store, background=background)

    print("--- Pass 1: live (or cached) ---")
    items = await aggregator.fetch_category(category)
    for item in items:
        media = item.media_type.value if item.media_type else "none"
        print(f"[{item.timestamp}] {item.title} | {item.source} | {media} | {item.id}")

    print("\n--- Pass 2: should be served from cache ---")
    again = await aggregator.fetch_category(category)
    print(f"{len(again)} items (first pass: {len(items)})")

    await background.drain()
    print("\n[OK] Run Complete.")

if __name__ == "__main__":
    # Configure logger to print to stderr so we see it
    logger.add(sys.stderr, level="INFO")
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "Hyderabad"))
