import pytest

from quickpost.exceptions import ExtractionFailed
from quickpost.schemas.extraction import Extracted, ExtractionMode, Urgency
from quickpost.schemas.voice import Transcript
from quickpost.services.rule_extractor import RuleBasedExtractor, detect_budget, detect_urgency

PLUMBER_REQUEST = (
    "My kitchen sink is leaking, I need a plumber urgently in Anna Nagar, Chennai, Tamil Nadu. "
    "Please fix it today. My budget is 2000 rupees."
)


@pytest.fixture
def extractor(gazetteer):
    return RuleBasedExtractor(gazetteer)


def test_plumber_request(extractor):
    job = extractor.extract_job(PLUMBER_REQUEST)

    assert job.service_category == "plumbing"
    assert job.job_title == "Plumbing Service"
    assert job.urgency == Urgency.HIGH
    assert job.location.area == "Anna Nagar"
    assert job.location.district == "Chennai"
    assert job.location.state == "Tamil Nadu"
    assert job.budget.min == job.budget.max == 2000
    assert job.timeframe == "Today"
    assert job.requirements == ["Fix it today"]


def test_garbled_input_fails(extractor):
    with pytest.raises(ExtractionFailed):
        extractor.extract_job("blah blah hmm")


def test_state_inferred_from_district(extractor):
    location = extractor.extract_location("Need a painter near Gandhipuram in Coimbatore")

    assert location.district == "Coimbatore"
    assert location.state == "Tamil Nadu"
    assert location.area == "Gandhipuram"


def test_extract_user(extractor):
    user = extractor.extract_user("My name is Priya Raman, mobile 98765 43210, I live in Adyar, Chennai.")

    assert user.first_name == "Priya"
    assert user.last_name == "Raman"
    assert user.mobile == "9876543210"
    assert user.location.area == "Adyar"
    assert user.location.district == "Chennai"
    assert user.location.state == "Tamil Nadu"
    assert user.confidence == 1.0


def test_extract_user_without_name(extractor):
    with pytest.raises(ExtractionFailed):
        extractor.extract_user("call me on 9876543210")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("This is urgent, water everywhere", Urgency.HIGH),
        ("Not urgent, sometime next month is fine", Urgency.LOW),
        ("Need the fan fixed", Urgency.MEDIUM),
    ],
)
def test_detect_urgency(text, expected):
    assert detect_urgency(text) == expected


def test_detect_budget():
    assert detect_budget("budget between 1,500 and 3000 rupees").max == 3000
    assert detect_budget("Rs 800 only").min == 800
    assert detect_budget("call 9876543210 any time") is None
    assert detect_budget("no money talk here") is None


@pytest.mark.asyncio
async def test_extract_wraps_record(extractor):
    outcome = await extractor.extract(Transcript(text=PLUMBER_REQUEST), ExtractionMode.JOB)

    assert isinstance(outcome, Extracted)
    assert outcome.record.service_category == "plumbing"


@pytest.mark.asyncio
async def test_extract_blank_transcript(extractor):
    with pytest.raises(ExtractionFailed):
        await extractor.extract(Transcript(text=" "), ExtractionMode.USER)


def test_short_form_request(extractor):
    job = extractor.extract_job("I need a plumber in Anna Nagar, Chennai, Tamil Nadu, budget 2000, urgent")

    assert job.service_category == "plumbing"
    assert job.urgency == Urgency.HIGH
    assert job.location.area == "Anna Nagar"
    assert job.budget.max == 2000
    assert job.timeframe == "As soon as possible"
