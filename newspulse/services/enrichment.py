"""
Enrichment gateway: on-demand translations/summaries and speech audio,
keyed by item identity and decoupled from the aggregation cycle.

Both subjects use a two-tier cache (process memory, then shared store).
Entries never expire: a translation written once is served forever.
"""
import base64
import re
from typing import Optional

from pydantic import ValidationError

from newspulse.config import settings
from newspulse.models.items import EnhancedContent, GeneratedContent
from newspulse.services.background import BackgroundTasks
from newspulse.services.cache import MemoryCache
from newspulse.services.llm import LLMService
from newspulse.services.logger import logger
from newspulse.services.shared_store import SharedStore
from newspulse.services.speech import SpeechService
from newspulse.tools.json_recovery import JSONRecoveryError, recover_json

GENERATION_SCHEMA = GeneratedContent.model_json_schema(by_alias=True)

ENHANCE_PROMPT = """
Task: News Enhancement.
Source: "{title}" - "{description}"

1. WRITE A FULL ARTICLE (250-300 words): Professional journalist style. Keep it concise and informative.
2. SUMMARIZE (50 words): Key facts.
3. TRANSLATE the summary and the *Full Article* into:
   - Roman Urdu
   - Urdu (Nastaliq)
   - Hindi
   - Telugu

Output JSON only:
{{
  "fullArticle": "string",
  "summaryShort": "string",
  "summaryRomanUrdu": "string",
  "summaryUrdu": "string",
  "summaryHindi": "string",
  "summaryTelugu": "string",
  "fullArticleRomanUrdu": "string",
  "fullArticleUrdu": "string",
  "fullArticleHindi": "string",
  "fullArticleTelugu": "string"
}}
"""

FREE_TEXT_SUFFIX = "\n\nCRITICAL: Return ONLY valid JSON. Do not use Markdown formatting."

_URL_RE = re.compile(r"https?://\S+")
_MARKUP_RE = re.compile(r"[*#_`~>\[\]()]")
_SPACE_RE = re.compile(r"\s+")

_DEVICE_VOICES = {
    "urdu": "ur-IN",
    "hindi": "hi-IN",
    "telugu": "te-IN",
    "roman": "hi-IN",  # Roman Urdu reads better with a Hindi voice
}


class AudioSynthesisError(RuntimeError):
    """Audio could not be produced; the caller should use on-device speech instead."""


def device_voice_lang(tab: str) -> str:
    return _DEVICE_VOICES.get(tab, "en-IN")


def audio_cache_key(text: str) -> str:
    # A short sample plus the length bounds the key size for long articles
    sample = text.strip()[:50] + str(len(text))
    return base64.urlsafe_b64encode(sample.encode("utf-8")).decode("ascii")


def sanitize_for_speech(text: str) -> str:
    text = _URL_RE.sub("", text)
    text = _MARKUP_RE.sub("", text)
    text = _SPACE_RE.sub(" ", text)
    text = text.replace('"', "")
    return text.strip()


class EnrichmentGateway:
    def __init__(
        self,
        generator: LLMService,
        speech: SpeechService,
        shared: SharedStore,
        background: BackgroundTasks,
        article_cache: Optional[MemoryCache[EnhancedContent]] = None,
        audio_cache: Optional[MemoryCache[str]] = None,
        audio_max_chars: int = None,
        voice: str = None,
    ):
        self.generator = generator
        self.speech = speech
        self.shared = shared
        self.background = background
        self.article_cache = article_cache if article_cache is not None else MemoryCache()
        self.audio_cache = audio_cache if audio_cache is not None else MemoryCache()
        self.audio_max_chars = audio_max_chars or settings.AUDIO_MAX_CHARS
        self.voice = voice or settings.TTS_VOICE

    async def enhance(self, article_id: str, title: str, description: str) -> EnhancedContent:
        """Never raises: falls back to the "translation unavailable" payload."""
        cached = self.article_cache.get(article_id)
        if cached is not None:
            return cached

        stored = await self._read_shared_enrichment(article_id)
        if stored is not None:
            self.article_cache.set(article_id, stored)
            return stored

        prompt = ENHANCE_PROMPT.format(title=title, description=description)
        content = await self._structured_attempt(prompt)
        if content is None:
            logger.warning(f"Structured enhancement failed for {article_id}, attempting free-text fallback...")
            content = await self._free_text_attempt(prompt)

        if content is None:
            logger.error(f"Enhancement failed for {article_id}; serving placeholder")
            return EnhancedContent.unavailable(description)

        self.article_cache.set(article_id, content)
        if self.shared.configured:
            self.background.spawn(self._write_shared_enrichment(article_id, content), name=f"enrichment-write:{article_id}")
        return content

    async def synthesize_audio(self, text: str) -> str:
        """Returns base64 audio or raises AudioSynthesisError."""
        key = audio_cache_key(text)
        cached = self.audio_cache.get(key)
        if cached is not None:
            return cached

        stored = await self._read_shared_audio(key)
        if stored:
            self.audio_cache.set(key, stored)
            return stored

        clean = sanitize_for_speech(text)
        if not clean:
            raise AudioSynthesisError("Audio generation failed: Empty text")
        speech_text = clean[:self.audio_max_chars]

        try:
            audio = await self.speech.synthesize(speech_text, self.voice)
        except Exception as e:
            logger.warning(f"TTS failed: {e}")
            raise AudioSynthesisError("TTS API error") from e
        if not audio:
            raise AudioSynthesisError("TTS generation failed (No Audio Data).")

        self.audio_cache.set(key, audio)
        if self.shared.configured:
            self.background.spawn(self._write_shared_audio(key, audio), name=f"audio-write:{key[:16]}")
        return audio

    async def _structured_attempt(self, prompt: str) -> Optional[EnhancedContent]:
        try:
            data = await self.generator.generate_json(prompt, schema=GENERATION_SCHEMA)
            return EnhancedContent.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Structured output failed validation: {e.error_count()} errors")
        except Exception as e:
            logger.warning(f"Structured generation failed: {e}")
        return None

    async def _free_text_attempt(self, prompt: str) -> Optional[EnhancedContent]:
        try:
            text = await self.generator.generate_text(prompt + FREE_TEXT_SUFFIX)
            return EnhancedContent.model_validate(recover_json(text))
        except (JSONRecoveryError, ValidationError) as e:
            logger.warning(f"Free-text output unusable: {e}")
        except Exception as e:
            logger.error(f"Free-text generation failed: {e}")
        return None

    async def _read_shared_enrichment(self, article_id: str) -> Optional[EnhancedContent]:
        if not self.shared.configured:
            return None
        try:
            data = await self.shared.get_enrichment(article_id)
            return EnhancedContent.model_validate(data) if data else None
        except ValidationError:
            logger.warning(f"Stored enrichment for {article_id} is malformed; regenerating")
        except Exception as e:
            logger.warning(f"Shared enrichment lookup failed for {article_id}: {e}")
        return None

    async def _read_shared_audio(self, key: str) -> Optional[str]:
        if not self.shared.configured:
            return None
        try:
            return await self.shared.get_audio(key)
        except Exception as e:
            logger.warning(f"Shared audio lookup failed: {e}")
            return None

    async def _write_shared_enrichment(self, article_id: str, content: EnhancedContent):
        try:
            await self.shared.upsert_enrichment(article_id, content.model_dump(by_alias=True))
        except Exception as e:
            logger.warning(f"Shared enrichment write failed for {article_id}: {e}")

    async def _write_shared_audio(self, key: str, audio: str):
        try:
            await self.shared.upsert_audio(key, audio)
        except Exception as e:
            logger.warning(f"Shared audio write failed: {e}")
