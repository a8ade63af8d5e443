"""
Headless tasks for filmcam.

    invoke -r src/filmcam/cli capture --image shot.jpg --exposure 1.0
    invoke -r src/filmcam/cli apply-filter in.jpg out.jpg --profile classic_bw
    invoke -r src/filmcam/cli histogram in.jpg
    invoke -r src/filmcam/cli filters
"""

import os
from pathlib import Path

import structlog
from dotenv import load_dotenv
from invoke import Context, task

from filmcam.config import get_default_user_id
from filmcam.logging_config import configure_structured_logging
from filmcam.models.filter_profile import get_filter_profile, list_filter_profiles
from filmcam.services.filters import get_filter_compositor
from filmcam.services.image_processor import EDIT_JPEG_QUALITY, get_image_processor
from filmcam.ui.handlers.pipeline import capture_still, capture_webcam, load_histogram

logger = structlog.get_logger()


def _load_env(env_file: str) -> None:
    if os.path.exists(env_file):
        load_dotenv(dotenv_path=env_file)
        logger.info("env_file_loaded", env_file=env_file)
    else:
        logger.warning("env_file_not_found", env_file=env_file)
    configure_structured_logging()


@task
def capture(
    c: Context,
    image: str = "",
    user_id: str = "",
    exposure: float = 0.0,
    front: bool = False,
    env_file: str = ".env",
):
    """
    Capture one photo and store it.

    Args:
        c (Context): Invoke context.
        image (str): Still image to use instead of the webcam.
        user_id (str): Owner of the photo. Defaults to DEFAULT_USER_ID.
        exposure (float): Exposure in stops, -2.0 to 2.0.
        front (bool): Use the front (mirrored) camera.
        env_file (str): Path to the environment file.
    """
    _load_env(env_file)
    owner = user_id or get_default_user_id()
    facing_mode = "user" if front else "environment"

    def on_progress(percent: int, stage: str) -> None:
        print(f"[{percent:3d}%] {stage}")

    if image:
        outcome = capture_still(Path(image), owner, exposure, facing_mode, progress_callback=on_progress)
    else:
        outcome = capture_webcam(owner, exposure, facing_mode, progress_callback=on_progress)

    if outcome.record is not None:
        print(f"Saved {outcome.record.id}: {outcome.record.image_url}")
    else:
        print(f"Capture {outcome.status.value}: {outcome.user_message}")


@task(name="apply-filter")
def apply_filter(c: Context, source: str, destination: str, profile: str = "none"):
    """
    Filter a local image into a new JPEG without storing anything.

    Args:
        c (Context): Invoke context.
        source (str): Input image file.
        destination (str): Output JPEG file.
        profile (str): Catalog filter id.
    """
    processor = get_image_processor()
    try:
        filter_profile = get_filter_profile(profile)
    except KeyError:
        print(f"Unknown filter '{profile}'. Run 'filters' to list them.")
        return

    buffer = processor.decode(Path(source).read_bytes())
    filtered = get_filter_compositor().apply(buffer, filter_profile)
    Path(destination).write_bytes(processor.encode(filtered, EDIT_JPEG_QUALITY))
    logger.info("filter_applied", source=source, destination=destination, profile=filter_profile.id)
    print(f"Wrote {destination} ({filter_profile.name})")


@task
def histogram(c: Context, source: str):
    """
    Print a per-channel summary of an image's histogram.

    Args:
        c (Context): Invoke context.
        source (str): Local file, or an http(s)/gs URL.
    """
    if source.startswith(("http://", "https://", "gs://")):
        result = load_histogram(source)
    else:
        processor = get_image_processor()
        result = processor.analyze_histogram(processor.decode(Path(source).read_bytes()))

    if result.is_empty():
        print("No pixels.")
        return

    for channel in ("r", "g", "b"):
        counts = result.channel(channel)
        total = sum(counts)
        mean = sum(value * count for value, count in enumerate(counts)) / total
        peak = max(range(len(counts)), key=counts.__getitem__)
        print(f"{channel.upper()}: mean={mean:6.1f} peak={peak:3d} ({counts[peak]} px)")
    print(f"max bin count: {result.max_count}")


@task
def filters(c: Context):
    """List the filter catalog."""
    for profile in list_filter_profiles():
        print(f"{profile.id:<15} {profile.name:<20} {profile.effect or '(identity)'}")
