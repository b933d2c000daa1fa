"""
CLI tool to run one Quick Post against a running voice API.

Usage:
    python scripts/quick_post.py --audio request.webm [--logged-in] [--post]
    python scripts/quick_post.py --seconds 15 [--post]

Examples:
    # Transcribe a saved recording and show what was extracted
    python scripts/quick_post.py --audio samples/plumber.webm --logged-in

    # Record 15 seconds from the microphone, sign up and post the job
    python scripts/quick_post.py --seconds 15 --post
"""

import argparse
import asyncio
import json
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from quickpost.config import get_settings
from quickpost.logging_config import get_logger, setup_logging
from quickpost.services.field_extractor import FieldExtractor
from quickpost.services.marketplace_client import MarketplaceClient
from quickpost.services.microphone import FileAudioSource, SoundDeviceMicrophone
from quickpost.services.notifications import Notification
from quickpost.services.quick_post_flow import FlowStep, QuickPostFlow
from quickpost.services.recorder import Recorder
from quickpost.services.transcription import TranscriptionClient

setup_logging()
settings = get_settings()
logger = get_logger(__name__)


class PrintNotifier:
    def notify(self, notification: Notification) -> None:
        print(f"[{notification.variant.value}] {notification.title}: {notification.description}")


def _show(label: str, outcome) -> None:
    if outcome is None:
        return
    tag = " (DEMO DATA)" if outcome.is_demo else ""
    print(f"\n{label}{tag}:")
    print(json.dumps(outcome.record.to_wire(), indent=2, ensure_ascii=False))


async def quick_post(
    audio: str | None = None,
    seconds: float = 10.0,
    logged_in: bool = False,
    post: bool = False,
) -> bool:
    """Record (or replay), review, and optionally sign up and post."""
    source = FileAudioSource(audio) if audio else SoundDeviceMicrophone()
    flow = QuickPostFlow(
        recorder=Recorder(source),
        transcriber=TranscriptionClient(),
        extractor=FieldExtractor(),
        marketplace=MarketplaceClient(),
        notifier=PrintNotifier(),
        logged_in=logged_in,
    )

    if not flow.start_recording():
        return False
    if not audio:
        print(f"Recording for {seconds:.0f}s... speak now.")
        await asyncio.sleep(min(seconds, settings.max_recording_seconds))

    if not await flow.stop_and_process():
        return False

    if flow.transcript is not None:
        print(f"\nTranscript ({flow.transcript.detected_language.display_name}): {flow.transcript.text}")

    if flow.step == FlowStep.USER_INFO:
        _show("Account details", flow.user_review)
        if not post:
            return True
        if not await flow.create_account_and_continue():
            return False

    _show("Job details", flow.job_review)
    if not post:
        return True
    if not await flow.post_job():
        return False

    print(f"\nJob posted: {flow.posted_job.id}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Post a marketplace job by voice")
    parser.add_argument("--audio", help="Audio file to transcribe instead of using the microphone")
    parser.add_argument("--seconds", type=float, default=10.0, help="Microphone recording length")
    parser.add_argument("--logged-in", action="store_true", help="Skip quick signup and extract the job directly")
    parser.add_argument("--post", action="store_true", help="Create the account and post the job after review")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")

    args = parser.parse_args()
    if args.verbose:
        setup_logging("DEBUG")

    ok = asyncio.run(quick_post(
        audio=args.audio,
        seconds=args.seconds,
        logged_in=args.logged_in,
        post=args.post,
    ))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
