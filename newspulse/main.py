import asyncio
import sys
from newspulse.config import settings
from newspulse.services.background import BackgroundTasks
from newspulse.services.database import db
from newspulse.services.logger import logger
from newspulse.services.shared_store import shared_store
from newspulse.workflows.pipeline import create_aggregator

async def refresh_all():
    """One-shot refresh of every category; waits for shared-store writes before exiting."""
    settings.ensure_dirs()
    await db.init()
    await shared_store.connect()

    background = BackgroundTasks()
    aggregator = create_aggregator(local=db, shared=shared_store, background=background)
    results = await aggregator.refresh_all()
    for category, items in results.items():
        logger.info(f"{category.value}: {len(items)} items")

    await background.drain()
    return results

def main():
    try:
        asyncio.run(refresh_all())
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
