import httpx
from typing import Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from newspulse.config import settings
from newspulse.services.logger import logger

_SAFETY_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]

class SpeechService:
    """Text-to-speech through the Gemini generateContent endpoint (AUDIO modality)."""

    def __init__(self, api_key: str = None, model: str = None, base_url: str = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = model or settings.TTS_MODEL
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self._transport = transport

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"TTS call failed, retrying in {retry_state.next_action.sleep} seconds... (attempt {retry_state.attempt_number})"
        )
    )
    async def synthesize(self, text: str, voice: str = None) -> str:
        """Returns base64-encoded audio. Raises on any failure."""
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY is missing")

        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice or settings.TTS_VOICE}}
                },
            },
            "safetySettings": [{"category": c, "threshold": "BLOCK_NONE"} for c in _SAFETY_CATEGORIES],
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.post(url, params={"key": self.api_key}, json=payload, timeout=settings.SPEECH_TIMEOUT)
            resp.raise_for_status()
            data = resp.json()

        try:
            audio = data["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
        except (KeyError, IndexError, TypeError):
            audio = None
        if not audio:
            raise ValueError("TTS response carried no audio data")
        return audio

speech = SpeechService()
