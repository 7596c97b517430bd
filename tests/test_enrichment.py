import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from newspulse.services.cache import MemoryCache
from newspulse.services.enrichment import (
    AudioSynthesisError,
    EnrichmentGateway,
    audio_cache_key,
    device_voice_lang,
    sanitize_for_speech,
)

GOOD_PAYLOAD = {
    "fullArticle": "The metro line opened on Monday.",
    "summaryShort": "Metro opens.",
    "summaryRomanUrdu": "Metro khul gayi.",
    "summaryUrdu": "میٹرو کھل گئی۔",
    "summaryHindi": "मेट्रो खुल गई।",
    "summaryTelugu": "మెట్రో ప్రారంభమైంది.",
    "fullArticleRomanUrdu": "Metro line peer ko khuli.",
    "fullArticleUrdu": "میٹرو لائن پیر کو کھلی۔",
    "fullArticleHindi": "मेट्रो लाइन सोमवार को खुली।",
    "fullArticleTelugu": "మెట్రో లైన్ సోమవారం ప్రారంభమైంది.",
}


def build_gateway(shared, background, generator=None, speech=None, **kwargs):
    if generator is None:
        generator = MagicMock()
        generator.generate_json = AsyncMock(return_value=dict(GOOD_PAYLOAD))
        generator.generate_text = AsyncMock(return_value=json.dumps(GOOD_PAYLOAD))
    if speech is None:
        speech = MagicMock()
        speech.synthesize = AsyncMock(return_value="UklGRg==")
    return EnrichmentGateway(generator, speech, shared, background, **kwargs)


@pytest.mark.asyncio
async def test_structured_generation_is_cached_in_both_tiers(shared, background):
    gateway = build_gateway(shared, background)

    content = await gateway.enhance("rss_1", "Metro opens", "The metro line opened.")

    assert content.available
    assert content.summary_hindi == "मेट्रो खुल गई।"
    await background.drain()
    assert shared.enrichment["rss_1"]["summaryShort"] == "Metro opens."


@pytest.mark.asyncio
async def test_memory_hit_skips_generation(shared, background):
    gateway = build_gateway(shared, background)

    await gateway.enhance("rss_1", "Metro opens", "desc")
    await gateway.enhance("rss_1", "Metro opens", "desc")

    gateway.generator.generate_json.assert_awaited_once()


@pytest.mark.asyncio
async def test_shared_hit_populates_memory(shared, background):
    shared.enrichment["rss_2"] = dict(GOOD_PAYLOAD)
    gateway = build_gateway(shared, background)

    content = await gateway.enhance("rss_2", "t", "d")

    assert content.full_article == GOOD_PAYLOAD["fullArticle"]
    gateway.generator.generate_json.assert_not_awaited()
    assert "rss_2" in gateway.article_cache


@pytest.mark.asyncio
async def test_free_text_fallback_recovers_fenced_json(shared, background):
    generator = MagicMock()
    generator.generate_json = AsyncMock(side_effect=RuntimeError("schema mode unsupported"))
    generator.generate_text = AsyncMock(return_value=f"Here you go:\n```json\n{json.dumps(GOOD_PAYLOAD)}\n```")
    gateway = build_gateway(shared, background, generator=generator)

    content = await gateway.enhance("rss_3", "t", "d")

    assert content.available
    assert content.summary_short == "Metro opens."
    prompt = generator.generate_text.await_args.args[0]
    assert prompt.endswith("Return ONLY valid JSON. Do not use Markdown formatting.")


@pytest.mark.asyncio
async def test_incomplete_structured_output_falls_back(shared, background):
    partial = dict(GOOD_PAYLOAD, summaryTelugu="")
    generator = MagicMock()
    generator.generate_json = AsyncMock(return_value=partial)
    generator.generate_text = AsyncMock(return_value=json.dumps(GOOD_PAYLOAD))
    gateway = build_gateway(shared, background, generator=generator)

    content = await gateway.enhance("rss_4", "t", "d")

    assert content.summary_telugu == GOOD_PAYLOAD["summaryTelugu"]
    generator.generate_text.assert_awaited_once()


@pytest.mark.asyncio
async def test_always_malformed_output_yields_placeholder(shared, background):
    generator = MagicMock()
    generator.generate_json = AsyncMock(return_value={})
    generator.generate_text = AsyncMock(return_value="Sorry, I cannot help with that.")
    gateway = build_gateway(shared, background, generator=generator)

    content = await gateway.enhance("rss_5", "Metro opens", "The metro line opened.")

    assert not content.available
    assert content.full_article == "The metro line opened."
    assert content.summary_urdu == "ترجمہ دستیاب نہیں ہے۔"
    # Placeholders are never cached, so a later request retries generation
    await background.drain()
    assert "rss_5" not in gateway.article_cache
    assert "rss_5" not in shared.enrichment


@pytest.mark.asyncio
async def test_shared_store_errors_do_not_break_enhance(shared, background):
    shared.fail_reads = True
    shared.fail_writes = True
    gateway = build_gateway(shared, background)

    content = await gateway.enhance("rss_6", "t", "d")
    await background.drain()

    assert content.available
    assert "rss_6" in gateway.article_cache


@pytest.mark.asyncio
async def test_offline_store_skips_shared_write(offline_shared, background):
    gateway = build_gateway(offline_shared, background)

    await gateway.enhance("rss_7", "t", "d")

    assert background.pending == 0


@pytest.mark.asyncio
async def test_audio_generated_then_served_from_memory(shared, background):
    gateway = build_gateway(shared, background)

    first = await gateway.synthesize_audio("**Metro** opens today https://x.test/story")
    second = await gateway.synthesize_audio("**Metro** opens today https://x.test/story")

    assert first == second == "UklGRg=="
    gateway.speech.synthesize.assert_awaited_once_with("Metro opens today", gateway.voice)
    await background.drain()
    assert shared.audio[audio_cache_key("**Metro** opens today https://x.test/story")] == "UklGRg=="


@pytest.mark.asyncio
async def test_audio_shared_hit(shared, background):
    shared.audio[audio_cache_key("hello")] = "c3RvcmVk"
    gateway = build_gateway(shared, background)

    assert await gateway.synthesize_audio("hello") == "c3RvcmVk"
    gateway.speech.synthesize.assert_not_awaited()


@pytest.mark.asyncio
async def test_audio_text_is_truncated(shared, background):
    gateway = build_gateway(shared, background, audio_max_chars=10)

    await gateway.synthesize_audio("abcdefghijklmnopqrstuvwxyz")

    assert gateway.speech.synthesize.await_args.args[0] == "abcdefghij"


@pytest.mark.asyncio
async def test_audio_failure_raises(shared, background):
    speech = MagicMock()
    speech.synthesize = AsyncMock(side_effect=ValueError("TTS response carried no audio data"))
    gateway = build_gateway(shared, background, speech=speech)

    with pytest.raises(AudioSynthesisError):
        await gateway.synthesize_audio("hello")
    assert len(gateway.audio_cache) == 0


@pytest.mark.asyncio
async def test_audio_for_empty_text_raises(shared, background):
    gateway = build_gateway(shared, background)

    with pytest.raises(AudioSynthesisError):
        await gateway.synthesize_audio("  https://only.a/link  ")
    gateway.speech.synthesize.assert_not_awaited()


def test_audio_cache_key_is_bounded_and_length_sensitive():
    long_text = "x" * 5000

    assert len(audio_cache_key(long_text)) < 100
    assert audio_cache_key("a" * 60) != audio_cache_key("a" * 61)
    assert audio_cache_key(" same ") == audio_cache_key(" same ")


def test_sanitize_for_speech():
    assert sanitize_for_speech('# "Title"\n\n*bold* [link](https://x.test)') == "Title bold link"


def test_device_voice_lang():
    assert device_voice_lang("telugu") == "te-IN"
    assert device_voice_lang("roman") == "hi-IN"
    assert device_voice_lang("english") == "en-IN"


def test_memory_cache_injection(shared, background):
    memo = MemoryCache()
    gateway = build_gateway(shared, background, article_cache=memo)

    assert gateway.article_cache is memo
