"""Camera page for filmcam application."""

import streamlit as st

from filmcam.services.capture import CaptureOutcome, OutcomeStatus
from filmcam.services.frame_source import FACING_ENVIRONMENT, FACING_USER
from filmcam.services.image_processor import EXPOSURE_STEP, MAX_EXPOSURE, MIN_EXPOSURE
from filmcam.services.upload import ProgressMilestone
from filmcam.ui.components.error_display import get_error_display_manager
from filmcam.ui.handlers.pipeline import capture_still
from ...logging_config import get_logger

logger = get_logger(__name__)
error_display = get_error_display_manager()

STAGE_LABELS = {
    "encoded": "Encoding photo...",
    "blob_ready": "Preparing upload...",
    "uploaded": "Saving details...",
    "recorded": "Saved!",
}


def _initialize_session_state() -> None:
    if "facing_mode" not in st.session_state:
        st.session_state.facing_mode = FACING_ENVIRONMENT
    if "exposure" not in st.session_state:
        st.session_state.exposure = 0.0
    if "last_capture" not in st.session_state:
        st.session_state.last_capture = None


def _render_controls() -> None:
    col1, col2 = st.columns([3, 1])

    with col1:
        st.slider(
            "Exposure",
            min_value=MIN_EXPOSURE,
            max_value=MAX_EXPOSURE,
            step=0.5,
            key="exposure",
            help=f"Each stop shifts every channel by {EXPOSURE_STEP}.",
        )

    with col2:
        label = "Selfie (mirrored)" if st.session_state.facing_mode == FACING_USER else "Standard"
        st.write(label)
        if st.button(
            "🔄 Mirror",
            use_container_width=True,
            help="Saves the photo mirrored, as a front camera shows it. Choose the camera itself in the browser.",
        ):
            st.session_state.facing_mode = (
                FACING_ENVIRONMENT if st.session_state.facing_mode == FACING_USER else FACING_USER
            )
            logger.info("mirror_toggled", facing_mode=st.session_state.facing_mode)
            st.rerun()


def _render_outcome(outcome: CaptureOutcome) -> None:
    if outcome.status is OutcomeStatus.SUCCEEDED and outcome.record is not None:
        error_display.display_success_message("Photo saved.")
        st.image(outcome.record.image_url, caption=outcome.record.title, use_container_width=True)
        return

    if outcome.error is not None:
        error_display.display_error(outcome.error.get_error_info())
    elif outcome.user_message:
        error_display.display_warning_message(outcome.user_message)


def render_camera_page() -> None:
    """Render the camera page."""
    _initialize_session_state()

    st.markdown("### 📷 Camera")
    _render_controls()

    snapshot = st.camera_input("Take a photo", key="camera_snapshot")
    if snapshot is None:
        _render_last_capture()
        return

    if st.button("💾 Save photo", type="primary", use_container_width=True):
        progress_bar = st.progress(ProgressMilestone.STARTED.value, text="Capturing...")

        def on_progress(percent: int, stage: str) -> None:
            progress_bar.progress(percent, text=STAGE_LABELS.get(stage, stage))

        outcome = capture_still(
            snapshot.getvalue(),
            user_id=st.session_state.user_id,
            exposure=float(st.session_state.exposure),
            facing_mode=st.session_state.facing_mode,
            progress_callback=on_progress,
        )
        st.session_state.last_capture = outcome
        logger.info("capture_finished", status=outcome.status.value, user_id=st.session_state.user_id)

        if outcome.status is not OutcomeStatus.SUCCEEDED:
            progress_bar.empty()

    _render_last_capture()


def _render_last_capture() -> None:
    outcome = st.session_state.get("last_capture")
    if outcome is not None:
        _render_outcome(outcome)
