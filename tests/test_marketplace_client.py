import json

import httpx
import pytest

from quickpost.exceptions import NetworkError, ValidationError
from quickpost.schemas.extraction import ExtractedJob, JobLocation
from quickpost.services.api_client import ApiClient
from quickpost.services.marketplace_client import (
    MarketplaceClient,
    job_posting_payload,
    signup_payload,
    validate_mobile,
)


def marketplace_for(handler) -> MarketplaceClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MarketplaceClient(ApiClient(base_url="http://testserver", client=http), signup_password="secret123")


@pytest.mark.parametrize("raw", ["9876543210", "+91 98765 43210", "919876543210", "98765-43210"])
def test_validate_mobile_normalizes(raw):
    assert validate_mobile(raw) == "9876543210"


@pytest.mark.parametrize("raw", ["12345", "5876543210", "98765432101", "phone"])
def test_validate_mobile_rejects(raw):
    with pytest.raises(ValidationError):
        validate_mobile(raw)


def test_job_payload_flattens_budget_and_location(plumber_job):
    payload = job_posting_payload(plumber_job)

    assert payload["budget"] == "2500"
    assert payload["location"] == "Anna Nagar, Chennai, Tamil Nadu"
    assert payload["requirements"] == "Fix leaking tap, Check drainage"
    assert payload["serviceCategory"] == "plumbing"
    assert payload["urgencyLevel"] == "high"
    assert payload["isVoicePosted"] is True


def test_job_payload_defaults():
    job = ExtractedJob(job_title="Painting", location=JobLocation(district="Salem"))
    payload = job_posting_payload(job)

    assert payload["budget"] == "1000"
    assert payload["location"] == "Salem"
    assert payload["requirements"] == ""


def test_signup_payload(priya):
    payload = signup_payload(priya, "secret123")

    assert payload["firstName"] == "Priya"
    assert payload["role"] == "client"
    assert payload["password"] == payload["confirmPassword"] == "secret123"
    assert payload["location"]["district"] == "Chennai"
    assert "confidence" not in payload


def test_signup_payload_rejects_bad_mobile(priya):
    with pytest.raises(ValidationError):
        signup_payload(priya.model_copy(update={"mobile": "12345"}), "secret123")


@pytest.mark.asyncio
async def test_quick_signup(priya):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": 42, "firstName": "Priya", "lastName": "Raman"})

    account = await marketplace_for(handler).quick_signup(priya)

    assert seen["path"] == "/api/auth/quick-signup"
    assert seen["body"]["password"] == "secret123"
    assert account.id == "42"
    assert account.first_name == "Priya"


@pytest.mark.asyncio
async def test_post_job(plumber_job):
    def handler(request):
        assert request.url.path == "/api/job-postings"
        return httpx.Response(201, json={"id": "job-7", "title": "Plumbing Service", "status": "open"})

    created = await marketplace_for(handler).post_job(plumber_job)
    assert created.id == "job-7"


@pytest.mark.asyncio
@pytest.mark.parametrize("status, error", [(409, ValidationError), (422, ValidationError), (503, NetworkError)])
async def test_http_errors_are_mapped(priya, status, error):
    def handler(request):
        return httpx.Response(status, json={"message": "Mobile number already registered"})

    with pytest.raises(error):
        await marketplace_for(handler).quick_signup(priya)


@pytest.mark.asyncio
async def test_transport_error(plumber_job):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(NetworkError):
        await marketplace_for(handler).post_job(plumber_job)


@pytest.mark.asyncio
async def test_invalid_response(plumber_job):
    def handler(request):
        return httpx.Response(200, json={"title": "missing id"})

    with pytest.raises(NetworkError):
        await marketplace_for(handler).post_job(plumber_job)
