from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from telegram import Update

# Import services
from newspulse.config import settings
from newspulse.models.items import Category
from newspulse.services.background import BackgroundTasks
from newspulse.services.database import db
from newspulse.services.enrichment import AudioSynthesisError, EnrichmentGateway, device_voice_lang
from newspulse.services.llm import llm
from newspulse.services.logger import logger
from newspulse.services.shared_store import StoreNotConfiguredError, shared_store
from newspulse.services.speech import speech
from newspulse.workflows.pipeline import Aggregator, create_aggregator

VERSION = "1.0.0"

_background: BackgroundTasks | None = None
_aggregator: Aggregator | None = None
_gateway: EnrichmentGateway | None = None
_telegram_bot_app = None

async def _start_telegram_bot(aggregator: Aggregator):
    global _telegram_bot_app
    try:
        from newspulse.services.telegram_bot import create_telegram_bot
        _telegram_bot_app = create_telegram_bot(shared_store, aggregator)
        if _telegram_bot_app:
            await _telegram_bot_app.initialize()
            await _telegram_bot_app.start()
            if settings.TELEGRAM_USE_WEBHOOK:
                logger.info("🤖 Telegram Bot started; waiting for webhook updates on /api/bot")
            else:
                await _telegram_bot_app.updater.start_polling(allowed_updates=Update.ALL_TYPES)
                logger.info("🤖 Telegram Bot started and polling for channel posts!")
    except Exception as e:
        logger.error(f"Failed to start Telegram Bot: {e}")
        _telegram_bot_app = None

async def _stop_telegram_bot():
    global _telegram_bot_app
    if not _telegram_bot_app:
        return
    logger.info("Stopping Telegram Bot...")
    if _telegram_bot_app.updater and _telegram_bot_app.updater.running:
        await _telegram_bot_app.updater.stop()
    await _telegram_bot_app.stop()
    await _telegram_bot_app.shutdown()
    _telegram_bot_app = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    global _background, _aggregator, _gateway

    settings.ensure_dirs()
    await db.init()
    await shared_store.connect()

    _background = BackgroundTasks()
    _aggregator = create_aggregator(local=db, shared=shared_store, background=_background)
    _gateway = EnrichmentGateway(llm, speech, shared_store, _background)

    if settings.TELEGRAM_ENABLED and settings.TELEGRAM_BOT_TOKEN:
        await _start_telegram_bot(_aggregator)

    yield

    # Cleanup on shutdown
    await _stop_telegram_bot()
    await _background.drain()

app = FastAPI(title="News Pulse API", lifespan=lifespan)

# Allow CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # For dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

class EnhanceRequest(CamelModel):
    id: str
    title: str
    description: str = ""

class AudioRequest(CamelModel):
    text: str
    tab: str = "english"

class GalleryPostRequest(CamelModel):
    title: str
    description: str = ""
    media_url: str

def get_aggregator() -> Aggregator:
    if _aggregator is None:
        raise HTTPException(status_code=503, detail="Aggregator not initialized")
    return _aggregator

def get_gateway() -> EnrichmentGateway:
    if _gateway is None:
        raise HTTPException(status_code=503, detail="Enrichment not initialized")
    return _gateway

def get_background() -> BackgroundTasks | None:
    return _background

@app.get("/api/status")
async def get_status(background: BackgroundTasks | None = Depends(get_background)):
    return {
        "status": "ok",
        "version": VERSION,
        "sharedStore": shared_store.configured,
        "telegramBot": _telegram_bot_app is not None,
        "pendingWrites": background.pending if background else 0,
    }

@app.get("/api/categories")
async def list_categories():
    return {"categories": [c.value for c in Category]}

@app.get("/api/news/{category}")
async def get_news(category: str, aggregator: Aggregator = Depends(get_aggregator)):
    parsed = Category.parse(category)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
    items = await aggregator.fetch_category(parsed)
    return {"category": parsed.value, "items": [item.to_cache_dict() for item in items]}

@app.post("/api/enhance")
async def enhance_article(req: EnhanceRequest, gateway: EnrichmentGateway = Depends(get_gateway)):
    content = await gateway.enhance(req.id, req.title, req.description)
    return content.model_dump(by_alias=True)

@app.post("/api/audio")
async def generate_audio(req: AudioRequest, gateway: EnrichmentGateway = Depends(get_gateway)):
    try:
        audio = await gateway.synthesize_audio(req.text)
    except AudioSynthesisError as e:
        # Client falls back to on-device speech in the returned language
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "fallbackLang": device_voice_lang(req.tab)},
        )
    return {"audio": audio}

@app.get("/api/gallery")
async def get_gallery(aggregator: Aggregator = Depends(get_aggregator)):
    items = await aggregator.fetch_category(Category.GALLERY)
    return {"items": [item.to_cache_dict() for item in items]}

@app.post("/api/gallery")
async def add_gallery_post(req: GalleryPostRequest):
    try:
        rows = await shared_store.add_gallery_post(req.title, req.description, req.media_url)
    except StoreNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "created", "rows": rows}

@app.post("/api/bot")
async def telegram_webhook(request: Request):
    if _telegram_bot_app is None:
        raise HTTPException(status_code=503, detail="Telegram bot not running")
    payload = await request.json()
    update = Update.de_json(payload, _telegram_bot_app.bot)
    await _telegram_bot_app.process_update(update)
    return {"ok": True}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
