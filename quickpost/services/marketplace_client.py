"""
Marketplace Client.

Creates the quick-signup account and the job posting once the user has
reviewed what was extracted from their voice. Budget and location are
flattened to the plain strings the job-postings endpoint expects.
"""

from __future__ import annotations

import re
from typing import Any, TypeVar

import httpx
from pydantic import ConfigDict, Field

from quickpost.config import get_settings
from quickpost.exceptions import NetworkError, ValidationError
from quickpost.logging_config import get_logger
from quickpost.schemas.common import CamelModel
from quickpost.schemas.extraction import ExtractedJob, ExtractedUser
from quickpost.services.api_client import ApiClient, error_message

settings = get_settings()
logger = get_logger(__name__)

QUICK_SIGNUP_PATH = "/api/auth/quick-signup"
JOB_POSTINGS_PATH = "/api/job-postings"

DEFAULT_BUDGET = 1000
INDIAN_MOBILE = re.compile(r"^[6-9]\d{9}$")

ResponseT = TypeVar("ResponseT", bound=CamelModel)


class CreatedAccount(CamelModel):
    id: str
    first_name: str = ""
    last_name: str = ""

    model_config = ConfigDict(coerce_numbers_to_str=True)


class CreatedJob(CamelModel):
    id: str
    title: str = ""
    status: str = Field(default="open")

    model_config = ConfigDict(coerce_numbers_to_str=True)


def validate_mobile(mobile: str) -> str:
    """Normalize and check a 10-digit Indian mobile number."""
    digits = re.sub(r"[\s-]", "", mobile)
    if digits.startswith("+91"):
        digits = digits[3:]
    elif len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    if not INDIAN_MOBILE.match(digits):
        raise ValidationError("Mobile number must be 10 digits starting with 6, 7, 8 or 9.")
    return digits


def signup_payload(user: ExtractedUser, password: str) -> dict[str, Any]:
    payload = user.to_wire()
    payload.pop("confidence", None)
    if user.mobile:
        payload["mobile"] = validate_mobile(user.mobile)
    payload.update({
        "role": "client",
        "password": password,
        "confirmPassword": password,
    })
    return payload


def job_posting_payload(job: ExtractedJob) -> dict[str, Any]:
    budget = job.budget.max if job.budget and job.budget.max else DEFAULT_BUDGET
    return {
        "title": job.job_title,
        "description": job.job_description,
        "serviceCategory": job.service_category,
        "urgencyLevel": job.urgency.value,
        "budget": str(int(budget)),
        "location": ", ".join(job.location.parts()),
        "requirements": ", ".join(job.requirements),
        "timeframe": job.timeframe,
        "isVoicePosted": True,
        "originalLanguage": job.original_language.value,
    }


class MarketplaceClient:
    def __init__(self, api: ApiClient | None = None, signup_password: str | None = None) -> None:
        self.api = api or ApiClient()
        self.signup_password = signup_password or settings.quick_signup_password

    async def quick_signup(self, user: ExtractedUser) -> CreatedAccount:
        """Create a client account from voice-extracted details."""
        account = await self._post(QUICK_SIGNUP_PATH, signup_payload(user, self.signup_password), CreatedAccount)
        logger.info("quick_signup_complete", account_id=account.id)
        return account

    async def post_job(self, job: ExtractedJob) -> CreatedJob:
        created = await self._post(JOB_POSTINGS_PATH, job_posting_payload(job), CreatedJob)
        logger.info("job_posted", job_id=created.id, service=job.service_category)
        return created

    async def _post(self, path: str, payload: dict[str, Any], model: type[ResponseT]) -> ResponseT:
        try:
            return model.model_validate(await self.api.post(path, payload))
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("marketplace_http_error", path=path, status=status)
            if status in (400, 409, 422):
                raise ValidationError(error_message(e)) from e
            raise NetworkError(error_message(e)) from e
        except httpx.HTTPError as e:
            logger.error("marketplace_network_error", path=path, error=str(e))
            raise NetworkError("Could not reach the marketplace. Please check your connection.") from e
        except ValueError as e:
            raise NetworkError("The marketplace returned an invalid response.") from e
