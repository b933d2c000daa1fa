"""
Quick Post Flow.

Drives the voice job-posting shortcut end to end:

    record → transcribe → extract user (anonymous) or job (logged in)
           → review → create account → extract job → review → post

Each step is gated on the previous one succeeding. Failures are caught
here, reported through the notifier, and leave the flow on the step
the user can retry from. A created account is never rolled back.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

from quickpost.exceptions import QuickPostError, ValidationError
from quickpost.logging_config import generate_trace_id, get_logger, session_id_var
from quickpost.schemas.extraction import ExtractedJob, ExtractedUser, ExtractionMode, ExtractionOutcome
from quickpost.schemas.voice import RecordingSession, Transcript
from quickpost.services.field_extractor import Extractor
from quickpost.services.marketplace_client import CreatedAccount, CreatedJob, MarketplaceClient
from quickpost.services.notifications import LoggingNotifier, Notification, Notifier, Variant
from quickpost.services.recorder import Recorder
from quickpost.services.transcription import TranscriptionClient

logger = get_logger(__name__)


class FlowStep(str, Enum):
    WELCOME = "welcome"
    RECORDING = "recording"
    USER_INFO = "user_info"
    JOB_REVIEW = "job_review"
    POSTING = "posting"
    POSTED = "posted"


class QuickPostFlow:
    """
    One user's Quick Post session.

    Public actions never raise pipeline errors; they return whether they
    succeeded and leave ``step`` where the user should continue.
    """

    def __init__(
        self,
        recorder: Recorder,
        transcriber: TranscriptionClient,
        extractor: Extractor,
        marketplace: MarketplaceClient,
        notifier: Notifier | None = None,
        logged_in: bool = False,
    ) -> None:
        self.recorder = recorder
        self.transcriber = transcriber
        self.extractor = extractor
        self.marketplace = marketplace
        self.notifier = notifier or LoggingNotifier()
        self.logged_in = logged_in

        self.session_id = generate_trace_id()
        self.step = FlowStep.WELCOME
        self.recording: Optional[RecordingSession] = None
        self.transcript: Optional[Transcript] = None
        self.user_review: Optional[ExtractionOutcome] = None
        self.job_review: Optional[ExtractionOutcome] = None
        self.account: Optional[CreatedAccount] = None
        self.posted_job: Optional[CreatedJob] = None
        self._lock = asyncio.Lock()

    @property
    def extracted_user(self) -> Optional[ExtractedUser]:
        record = self.user_review.record if self.user_review else None
        return record if isinstance(record, ExtractedUser) else None

    @property
    def extracted_job(self) -> Optional[ExtractedJob]:
        record = self.job_review.record if self.job_review else None
        return record if isinstance(record, ExtractedJob) else None

    # ── Recording ────────────────────────────────────────────────

    def start_recording(self) -> bool:
        session_id_var.set(self.session_id)
        try:
            self.recorder.start()
        except QuickPostError as e:
            logger.warning("recording_start_failed", error=str(e))
            self._report(e)
            self.step = FlowStep.WELCOME
            return False

        self.recording = None
        self.transcript = None
        self.step = FlowStep.RECORDING
        self.notifier.notify(Notification(
            title="Recording Started",
            description="Speak your job requirements clearly in any language.",
        ))
        return True

    async def stop_and_process(self) -> bool:
        session = self.recorder.stop()
        if session is None:
            return False
        return await self.process_recording(session)

    async def process_recording(self, session: RecordingSession) -> bool:
        """Transcribe a finished recording and extract user or job details."""
        session_id_var.set(self.session_id)
        async with self._lock:
            self.recording = session
            try:
                transcript = await self.transcriber.transcribe(session)
                self.transcript = transcript
                if self.logged_in:
                    self.job_review = await self.extractor.extract(transcript, ExtractionMode.JOB)
                    self.step = FlowStep.JOB_REVIEW
                    outcome = self.job_review
                else:
                    self.user_review = await self.extractor.extract(transcript, ExtractionMode.USER)
                    self.step = FlowStep.USER_INFO
                    outcome = self.user_review
            except QuickPostError as e:
                logger.warning("voice_processing_failed", error=str(e))
                self._report(e, "Unable to process voice recording. Please try again.")
                self.step = FlowStep.WELCOME
                return False

        self._announce(outcome, "Voice Processed Successfully", "Your requirements have been extracted from your voice.")
        return True

    # ── Account and job ──────────────────────────────────────────

    async def create_account_and_continue(self) -> bool:
        """
        Sign the user up (once), then extract the job from the same transcript.

        If extraction fails after the account exists, calling this again
        only retries the extraction.
        """
        user = self.extracted_user
        if user is None or self.transcript is None:
            return False
        session_id_var.set(self.session_id)

        async with self._lock:
            try:
                self._reject_demo(self.user_review, "create an account")
                self.step = FlowStep.POSTING
                if self.account is None:
                    self.account = await self.marketplace.quick_signup(user)
                    self.logged_in = True
                    self.notifier.notify(Notification(
                        title="Account Created Successfully",
                        description=f"Welcome {self.account.first_name or user.first_name}! Your account has been created.",
                    ))
                self.job_review = await self.extractor.extract(self.transcript, ExtractionMode.JOB)
            except QuickPostError as e:
                logger.warning("account_step_failed", account_created=self.account is not None, error=str(e))
                self._report(e)
                self.step = FlowStep.USER_INFO
                return False

            self.step = FlowStep.JOB_REVIEW

        self._announce(self.job_review, "Job Details Ready", "Please review your job before posting.")
        return True

    async def post_job(self) -> bool:
        job = self.extracted_job
        if job is None:
            return False
        session_id_var.set(self.session_id)

        async with self._lock:
            try:
                self._reject_demo(self.job_review, "post a job")
                self.step = FlowStep.POSTING
                self.posted_job = await self.marketplace.post_job(job)
            except QuickPostError as e:
                logger.warning("job_post_failed", error=str(e))
                self._report(e, "Failed to post job. Please try again.")
                self.step = FlowStep.JOB_REVIEW
                return False

            self.step = FlowStep.POSTED

        self.notifier.notify(Notification(
            title="Job Posted Successfully!",
            description="Your job has been posted and workers will start bidding soon.",
        ))
        return True

    def cancel(self) -> None:
        """Close the flow. In-flight network results are dropped by the caller."""
        self.recorder.discard()
        self.recording = None
        self.step = FlowStep.WELCOME
        logger.info("quick_post_cancelled")

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _reject_demo(item: Optional[ExtractionOutcome], action: str) -> None:
        if item is not None and item.is_demo:
            raise ValidationError(f"Sample data shown in demo mode cannot be used to {action}. Please record again.")

    def _announce(self, outcome: Optional[ExtractionOutcome], title: str, description: str) -> None:
        if outcome is not None and outcome.is_demo:
            self.notifier.notify(Notification(
                title="Voice Processed (Demo Mode)",
                description="Showing sample data for demonstration. It was not taken from your recording.",
                variant=Variant.WARNING,
            ))
            return
        self.notifier.notify(Notification(title=title, description=description))

    def _report(self, error: QuickPostError, description: str | None = None) -> None:
        self.notifier.notify(Notification.from_error(error, description or str(error)))
