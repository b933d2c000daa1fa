import json

import httpx
import pytest

from quickpost.exceptions import ExtractionFailed
from quickpost.schemas.extraction import DemoMode, Extracted, ExtractedJob, ExtractedUser, ExtractionMode, Urgency
from quickpost.schemas.voice import SupportedLanguage, Transcript
from quickpost.services.api_client import ApiClient
from quickpost.services.field_extractor import DEMO_JOB, DEMO_USER, FieldExtractor

TRANSCRIPT = Transcript(text="Kitchen sink leaking in Anna Nagar, budget 2000", detected_language="en", confidence=0.9)

JOB_BODY = {
    "jobTitle": "Kitchen Sink Repair",
    "jobDescription": "Kitchen sink is leaking",
    "serviceCategory": "plumbing",
    "urgency": "High",
    "budget": None,
    "location": {"area": "Anna Nagar", "district": "Chennai", "state": "Tamil Nadu"},
    "requirements": None,
    "timeframe": "Today",
    "originalLanguage": "ta",
}


def extractor_for(handler, demo_mode=False) -> FieldExtractor:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FieldExtractor(ApiClient(base_url="http://testserver", client=http), demo_mode=demo_mode)


@pytest.mark.asyncio
async def test_extract_job():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=JOB_BODY)

    outcome = await extractor_for(handler).extract(TRANSCRIPT, ExtractionMode.JOB)

    assert isinstance(outcome, Extracted)
    assert not outcome.is_demo
    job = outcome.record
    assert isinstance(job, ExtractedJob)
    assert job.urgency == Urgency.HIGH
    assert job.budget is None
    assert job.requirements == []
    assert job.original_language == SupportedLanguage.TAMIL
    assert seen == {"path": "/api/voice/extract-job", "body": {"text": TRANSCRIPT.text, "detectedLanguage": "en"}}


@pytest.mark.asyncio
async def test_extract_user():
    def handler(request):
        assert request.url.path == "/api/voice/extract-user"
        return httpx.Response(200, json={
            "firstName": "Priya",
            "lastName": None,
            "mobile": "9876543210",
            "location": {"district": "Chennai"},
            "confidence": 0.8,
        })

    outcome = await extractor_for(handler).extract(TRANSCRIPT, ExtractionMode.USER)

    user = outcome.record
    assert isinstance(user, ExtractedUser)
    assert user.first_name == "Priya"
    assert user.last_name == ""
    assert user.location.district == "Chennai"


@pytest.mark.asyncio
async def test_failure_raises_without_demo_mode():
    def handler(request):
        return httpx.Response(500, json={"message": "Failed to extract job information"})

    with pytest.raises(ExtractionFailed, match="Failed to extract job information"):
        await extractor_for(handler).extract(TRANSCRIPT, ExtractionMode.JOB)


@pytest.mark.asyncio
async def test_failure_in_demo_mode_is_tagged():
    def handler(request):
        return httpx.Response(500, json={"message": "Failed to extract user information"})

    extractor = extractor_for(handler, demo_mode=True)
    job = await extractor.extract(TRANSCRIPT, ExtractionMode.JOB)
    user = await extractor.extract(TRANSCRIPT, ExtractionMode.USER)

    assert isinstance(job, DemoMode) and job.is_demo
    assert job.record == DEMO_JOB
    assert user.record == DEMO_USER
    assert user.reason == "Failed to extract user information"


@pytest.mark.asyncio
async def test_malformed_record_is_a_failure():
    def handler(request):
        return httpx.Response(200, json={"jobDescription": "no title"})

    with pytest.raises(ExtractionFailed):
        await extractor_for(handler).extract(TRANSCRIPT, ExtractionMode.JOB)


@pytest.mark.asyncio
async def test_blank_transcript_never_calls_out():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ExtractionFailed):
        await extractor_for(handler, demo_mode=True).extract(Transcript(text="  "), ExtractionMode.JOB)
