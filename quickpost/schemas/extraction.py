"""
Data models for structured extraction results.

``ExtractionOutcome`` is a tagged union so callers can always tell a
genuine extraction from placeholder demo data.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from quickpost.schemas.common import CamelModel
from quickpost.schemas.voice import SupportedLanguage


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExtractionMode(str, Enum):
    JOB = "job"
    USER = "user"


class BudgetRange(CamelModel):
    """Budget in Indian Rupees."""
    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "BudgetRange":
        if self.max < self.min:
            self.min, self.max = self.max, self.min
        return self


class UserLocation(CamelModel):
    area: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None

    def parts(self) -> list[str]:
        return [p.strip() for p in (self.area, self.district, self.state) if p and p.strip()]

    @property
    def is_empty(self) -> bool:
        return not self.parts()


class JobLocation(UserLocation):
    full_address: Optional[str] = None


class ExtractedJob(CamelModel):
    """Job posting fields pulled from a transcript (translated to English)."""
    job_title: str
    job_description: str = ""
    service_category: str = ""
    urgency: Urgency = Urgency.MEDIUM
    budget: Optional[BudgetRange] = None
    location: JobLocation = Field(default_factory=JobLocation)
    requirements: list[str] = Field(default_factory=list)
    timeframe: str = ""
    original_language: SupportedLanguage = SupportedLanguage.ENGLISH

    @field_validator("urgency", mode="before")
    @classmethod
    def _lower_urgency(cls, value: object) -> object:
        if value is None:
            return Urgency.MEDIUM
        if isinstance(value, str):
            return value.strip().lower() or Urgency.MEDIUM.value
        return value

    @field_validator("original_language", mode="before")
    @classmethod
    def _coerce_language(cls, value: object) -> SupportedLanguage:
        if isinstance(value, SupportedLanguage):
            return value
        return SupportedLanguage.coerce(value if isinstance(value, str) else None)

    @field_validator("requirements", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("job_description", "service_category", "timeframe", mode="before")
    @classmethod
    def _none_to_blank(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("location", mode="before")
    @classmethod
    def _none_to_unknown_location(cls, value: object) -> object:
        return JobLocation() if value is None else value


class ExtractedUser(CamelModel):
    """Account fields pulled from a Quick Join transcript."""
    first_name: str
    last_name: str = ""
    mobile: Optional[str] = None
    location: UserLocation = Field(default_factory=UserLocation)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("last_name", mode="before")
    @classmethod
    def _none_to_blank(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("location", mode="before")
    @classmethod
    def _none_to_unknown_location(cls, value: object) -> object:
        return UserLocation() if value is None else value

    @field_validator("confidence", mode="before")
    @classmethod
    def _none_to_zero(cls, value: object) -> object:
        return 0.0 if value is None else value


class ResolvedLocation(CamelModel):
    area: str = ""
    district: str = ""
    state: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class Extracted(CamelModel):
    """Genuine extraction from the transcript."""
    kind: Literal["extracted"] = "extracted"
    record: Union[ExtractedJob, ExtractedUser]

    @property
    def is_demo(self) -> bool:
        return False


class DemoMode(CamelModel):
    """Placeholder sample data substituted after a failed extraction."""
    kind: Literal["demo"] = "demo"
    record: Union[ExtractedJob, ExtractedUser]
    reason: str

    @property
    def is_demo(self) -> bool:
        return True


ExtractionOutcome = Annotated[Union[Extracted, DemoMode], Field(discriminator="kind")]
