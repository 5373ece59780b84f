import random
from unittest.mock import AsyncMock

import pytest

from whisper_store.services.language_detection import LanguageDetector, sample_messages

ME = "user-me"
THEM = "user-them"


def msg(text, sender=THEM):
    return {"senderId": sender, "text": text}


def test_sample_returns_all_when_short():
    assert sample_messages([1, 2, 3], 5) == [1, 2, 3]


def test_sample_is_without_replacement():
    picked = sample_messages(list(range(50)), 5, random.Random(7))

    assert len(picked) == 5
    assert len(set(picked)) == 5


@pytest.fixture
def classify():
    return AsyncMock(return_value="Spanish")


@pytest.fixture
def fetch():
    return AsyncMock(return_value=[msg("hola, como estas amigo?")])


@pytest.mark.asyncio
async def test_short_text_returns_default_without_classifying(fetch, classify):
    detector = LanguageDetector(fetch, classify)

    assert await detector.detect_message_language("  hola   ") == "English"
    classify.assert_not_awaited()


@pytest.mark.asyncio
async def test_message_detection_is_cached(fetch, classify, clock):
    detector = LanguageDetector(fetch, classify, clock=clock)

    assert await detector.detect_message_language("buenos dias a todos") == "Spanish"
    assert await detector.detect_message_language("buenos dias a todos") == "Spanish"
    classify.assert_awaited_once()

    clock.advance(5 * 60 * 1000 + 1)
    await detector.detect_message_language("buenos dias a todos")
    assert classify.await_count == 2


@pytest.mark.asyncio
async def test_classifier_failure_returns_default(fetch):
    detector = LanguageDetector(fetch, AsyncMock(side_effect=TimeoutError("slow")))

    assert await detector.detect_message_language("bonjour tout le monde") == "English"


@pytest.mark.asyncio
async def test_conversation_uses_only_other_users_long_messages(classify):
    fetch = AsyncMock(
        return_value=[
            msg("this one is mine, long enough", sender=ME),
            msg("short"),
            msg("exactly10!"),
            msg("hola, que tal la familia?"),
        ]
    )
    detector = LanguageDetector(fetch, classify)

    assert await detector.detect_conversation_language("c1", ME) == "Spanish"
    classify.assert_awaited_once_with("hola, que tal la familia?")
    fetch.assert_awaited_once_with("c1", 20)


@pytest.mark.asyncio
async def test_conversation_majority_with_first_seen_tie_break():
    texts = {
        "uno dos tres cuatro": "Spanish",
        "un deux trois quatre": "French",
        "cinco seis siete ocho": "Spanish",
        "cinq six sept huit": "French",
    }
    classify = AsyncMock(side_effect=lambda text: texts[text])
    fetch = AsyncMock(return_value=[msg(text) for text in texts])
    detector = LanguageDetector(fetch, classify, sample_size=5)

    # All four are sampled (fewer than the sample size), so order is kept.
    assert await detector.detect_conversation_language("c1", ME) == "Spanish"


@pytest.mark.asyncio
async def test_conversation_without_usable_messages_is_default(classify):
    detector = LanguageDetector(AsyncMock(return_value=[]), classify)

    assert await detector.detect_conversation_language("c1", ME) == "English"


@pytest.mark.asyncio
async def test_failed_classification_votes_for_default():
    classify = AsyncMock(side_effect=[RuntimeError("quota"), "French"])
    fetch = AsyncMock(return_value=[msg("premier message ici"), msg("second message ici")])
    detector = LanguageDetector(fetch, classify)

    # One vote each; the default was seen first.
    assert await detector.detect_conversation_language("c1", ME) == "English"


@pytest.mark.asyncio
async def test_padded_sample_votes_default_without_classifying(classify):
    detector = LanguageDetector(AsyncMock(return_value=[msg("   padded   ")]), classify)

    assert await detector.detect_conversation_language("c1", ME) == "English"
    classify.assert_not_awaited()


@pytest.mark.asyncio
async def test_message_cache_is_bounded(fetch, classify):
    detector = LanguageDetector(fetch, classify, max_entries=3)

    for i in range(10):
        await detector.detect_message_language(f"distinct message number {i}")

    assert len(detector._cache) <= 3
    await detector.detect_message_language("distinct message number 0")
    assert classify.await_count == 11


def test_cache_capacity_defaults_from_settings(fetch, classify):
    assert LanguageDetector(fetch, classify)._cache.max_entries == 500


@pytest.mark.asyncio
async def test_conversation_result_is_cached_until_cleared(fetch, classify):
    detector = LanguageDetector(fetch, classify)

    await detector.detect_conversation_language("c1", ME)
    await detector.detect_conversation_language("c1", ME)
    assert fetch.await_count == 1

    detector.clear_conversation_cache("c1")
    detector.clear_detection_cache()
    await detector.detect_conversation_language("c1", ME)
    assert fetch.await_count == 2


@pytest.mark.asyncio
async def test_fetch_failure_returns_default(classify):
    detector = LanguageDetector(AsyncMock(side_effect=OSError("offline")), classify)

    assert await detector.detect_conversation_language("c1", ME) == "English"
