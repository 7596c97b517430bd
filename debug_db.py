import asyncio
from datetime import datetime, timezone
from newspulse.config import settings
from newspulse.services.database import db

async def check_cache():
    await db.init()
    entries = await db.list_entries(settings.LOCAL_CACHE_PREFIX)
    if not entries:
        print("Local cache is empty.")
        return

    now_ms = datetime.now(timezone.utc).timestamp() * 1000
    print("Local feed cache entries:")
    for key, value in entries:
        age = (now_ms - value.get("timestamp", 0)) / 1000
        fresh = "fresh" if age < settings.FEED_CACHE_TTL_SECONDS else "stale"
        print(f"{key}: {len(value.get('articles', []))} articles, {age:.0f}s old ({fresh})")

if __name__ == "__main__":
    asyncio.run(check_cache())
