import httpx
import ollama
from newspulse.config import settings
from newspulse.services.logger import logger
import json
from typing import Dict, Any
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

# Only transport problems are worth repeating; malformed output is the caller's fallback concern
_TRANSIENT_ERRORS = (httpx.TransportError, ConnectionError)

class LLMService:
    def __init__(self, host: str = None, model: str = None):
        self.client = ollama.AsyncClient(host=host or settings.OLLAMA_BASE_URL)
        self.model = model or settings.OLLAMA_MODEL

    @retry(
        stop=stop_after_attempt(settings.LLM_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"LLM call failed, retrying in {retry_state.next_action.sleep} seconds... (attempt {retry_state.attempt_number})"
        )
    )
    async def generate_json(self, prompt: str, schema: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Structured generation. ``schema`` constrains the output when given.
        Returns {} when the model answers with something that is not JSON.
        """
        try:
            response = await self.client.chat(model=self.model, messages=[
                {'role': 'user', 'content': prompt}
            ], format=schema or 'json', options={'temperature': 0.1})

            content = response['message']['content']

            try:
                data = json.loads(content)
                return data if isinstance(data, dict) else {}
            except json.JSONDecodeError:
                logger.error(f"Failed to parse JSON from LLM: {content[:200]}")
                return {}
        except Exception as e:
            logger.error(f"LLM Generation failed: {e}")
            raise

    @retry(
        stop=stop_after_attempt(settings.LLM_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"LLM call failed, retrying in {retry_state.next_action.sleep} seconds... (attempt {retry_state.attempt_number})"
        )
    )
    async def generate_text(self, prompt: str) -> str:
        """Free-text generation."""
        try:
            response = await self.client.chat(model=self.model, messages=[
                {'role': 'user', 'content': prompt}
            ], options={'temperature': 0.3})
            return response['message']['content']
        except Exception as e:
            logger.error(f"LLM Text Gen failed: {e}")
            raise

llm = LLMService()
