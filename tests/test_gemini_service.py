import json

import httpx
import pytest

from quickpost.exceptions import ExtractionFailed, TranscriptionFailed
from quickpost.schemas.extraction import ExtractionMode, Urgency
from quickpost.schemas.voice import SupportedLanguage, Transcript
from quickpost.services import gemini_service


def gemini_reply(content) -> httpx.Response:
    text = content if isinstance(content, str) else json.dumps(content)
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_transcribe_sends_inline_audio():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return gemini_reply({"text": "Enakku electrician venum", "detectedLanguage": "ta", "confidence": 1.7})

    transcript = await gemini_service.transcribe_audio("QUJD", "audio/wav", client=client_for(handler))

    assert seen["url"].path.endswith(":generateContent")
    assert seen["url"].params["key"] == "test-key"
    inline = seen["body"]["contents"][0]["parts"][0]["inlineData"]
    assert inline == {"data": "QUJD", "mimeType": "audio/wav"}
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert transcript.detected_language == SupportedLanguage.TAMIL
    assert transcript.confidence == 1.0


@pytest.mark.asyncio
async def test_transcribe_failure():
    def handler(request):
        return httpx.Response(503, json={"error": {"message": "overloaded"}})

    with pytest.raises(TranscriptionFailed, match="Failed to transcribe audio"):
        await gemini_service.transcribe_audio("QUJD", client=client_for(handler))


@pytest.mark.asyncio
async def test_extract_job_information_from_fenced_json():
    content = "```json\n" + json.dumps({
        "jobTitle": "Fan Installation",
        "jobDescription": "Install two ceiling fans",
        "serviceCategory": "Electrician",
        "urgency": "Medium",
        "budget": None,
        "location": {"district": "Madurai"},
        "requirements": ["Install fans"],
        "timeframe": "This week",
    }) + "\n```"

    job = await gemini_service.extract_job_information(
        "rendu fan podanum", "ta", client=client_for(lambda request: gemini_reply(content))
    )

    assert job.job_title == "Fan Installation"
    assert job.service_category == "electrical"
    assert job.urgency == Urgency.MEDIUM
    assert job.budget is None
    assert job.original_language == SupportedLanguage.TAMIL


@pytest.mark.asyncio
async def test_extract_user_information_failure():
    def handler(request):
        return gemini_reply("not json at all")

    with pytest.raises(ExtractionFailed, match="Failed to extract user information"):
        await gemini_service.extract_user_information("hello", client=client_for(handler))


@pytest.mark.asyncio
async def test_extract_user_information_with_null_fields():
    def handler(request):
        return gemini_reply({"firstName": "Ravi", "lastName": None, "mobile": None, "location": None, "confidence": None})

    user = await gemini_service.extract_user_information("I am Ravi", client=client_for(handler))

    assert user.first_name == "Ravi"
    assert user.last_name == ""
    assert user.mobile is None
    assert user.location.is_empty
    assert user.confidence == 0.0


@pytest.mark.asyncio
async def test_extract_job_information_with_null_fields():
    def handler(request):
        return gemini_reply({
            "jobTitle": "Tap Repair",
            "jobDescription": None,
            "serviceCategory": None,
            "urgency": None,
            "budget": None,
            "location": None,
            "requirements": None,
            "timeframe": None,
        })

    job = await gemini_service.extract_job_information("tap repair", client=client_for(handler))

    assert job.job_title == "Tap Repair"
    assert job.job_description == ""
    assert job.service_category == ""
    assert job.urgency == Urgency.MEDIUM
    assert job.location.is_empty
    assert job.requirements == []
    assert job.timeframe == ""


@pytest.mark.asyncio
async def test_resolve_location():
    def handler(request):
        return gemini_reply({"area": "T. Nagar", "district": "Chennai", "state": "Tamil Nadu", "confidence": 0.93})

    resolved = await gemini_service.resolve_location("T Nagar", client=client_for(handler))

    assert resolved.district == "Chennai"
    assert resolved.confidence == pytest.approx(0.93)


@pytest.mark.asyncio
async def test_resolve_location_falls_back_to_low_confidence():
    def handler(request):
        return httpx.Response(500)

    resolved = await gemini_service.resolve_location("somewhere near the temple", client=client_for(handler))

    assert resolved.area == "somewhere near the temple"
    assert resolved.district == ""
    assert resolved.confidence == 0.1


@pytest.mark.asyncio
async def test_detect_language_falls_back_to_english():
    def handler(request):
        return httpx.Response(200, json={"candidates": []})

    detection = await gemini_service.detect_language("vanakkam", client=client_for(handler))

    assert detection.language == SupportedLanguage.ENGLISH
    assert detection.confidence == 0.5


@pytest.mark.asyncio
async def test_detect_language():
    def handler(request):
        return gemini_reply({"language": "hi", "confidence": 0.88})

    detection = await gemini_service.detect_language("mujhe plumber chahiye", client=client_for(handler))
    assert detection.language == SupportedLanguage.HINDI


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(gemini_service.settings, "gemini_api_key", "")

    def handler(request):
        raise AssertionError("no request expected")

    detection = await gemini_service.detect_language("hello", client=client_for(handler))
    assert detection.confidence == 0.5


@pytest.mark.asyncio
async def test_gemini_extractor():
    def handler(request):
        return gemini_reply({"firstName": "Arun", "lastName": "Kumar", "mobile": None, "location": {}, "confidence": 0.7})

    extractor = gemini_service.GeminiExtractor(client=client_for(handler))
    outcome = await extractor.extract(Transcript(text="I am Arun Kumar"), ExtractionMode.USER)

    assert not outcome.is_demo
    assert outcome.record.first_name == "Arun"
