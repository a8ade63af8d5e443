"""Editor page for filmcam application."""

import streamlit as st

from filmcam.models.filter_profile import (
    ADJUSTMENT_RANGES,
    NONE_FILTER_ID,
    FilterProfile,
    adjustment_profile,
    list_filter_profiles,
)
from filmcam.models.photo import PhotoRecord
from filmcam.models.pixel_buffer import PixelBuffer
from filmcam.services.capture import OutcomeStatus
from filmcam.services.filters import get_filter_compositor
from filmcam.services.image_processor import get_image_processor
from filmcam.services.metadata import get_metadata_service
from filmcam.services.upload import ProgressMilestone
from filmcam.ui.components.error_display import get_error_display_manager
from filmcam.ui.components.histogram import render_histogram
from filmcam.ui.handlers.pipeline import load_photo, save_edit
from ...logging_config import get_logger

logger = get_logger(__name__)
error_display = get_error_display_manager()

PREVIEW_COLUMNS = 5
WORKING_SIZE = 800


def initial_filter_index(record: PhotoRecord, profiles: list[FilterProfile]) -> int:
    """Index of the photo's current filter, falling back to ``none``."""
    ids = [profile.id for profile in profiles]
    current = record.filter_applied or NONE_FILTER_ID
    return ids.index(current) if current in ids else ids.index(NONE_FILTER_ID)


def _working_copy(record: PhotoRecord) -> PixelBuffer:
    """Downscaled original kept in the session for interactive previews."""
    cache = st.session_state.setdefault("editor_images", {})
    if record.image_url not in cache:
        with st.spinner("Loading photo..."):
            original = load_photo(record.image_url)
        cache[record.image_url] = get_image_processor().resize(original, WORKING_SIZE, WORKING_SIZE)
    return cache[record.image_url]


def _render_filter_previews(buffer: PixelBuffer, profiles: list[FilterProfile]) -> None:
    compositor = get_filter_compositor()
    columns = st.columns(PREVIEW_COLUMNS)
    for index, profile in enumerate(profiles):
        with columns[index % PREVIEW_COLUMNS]:
            st.image(compositor.preview(buffer, profile).to_image(), caption=profile.name)


def _render_adjustments() -> FilterProfile:
    st.markdown("#### Adjustments")
    values = {}
    for name, (low, high) in ADJUSTMENT_RANGES.items():
        values[name] = st.slider(name.capitalize(), min_value=low, max_value=high, value=1.0, step=0.05)
    return adjustment_profile(**values)


def render_editor_page() -> None:
    """Render the editor page."""
    st.markdown("### 🎨 Editor")

    photos = get_metadata_service().list_user_photos(st.session_state.user_id)
    if not photos:
        st.info("No photos yet. Take one on the camera page first.")
        return

    photo_ids = [photo.id for photo in photos]
    titles = {photo.id: photo.title for photo in photos}
    selected_id = st.selectbox("Photo", photo_ids, format_func=lambda photo_id: titles[photo_id])
    record = next(photo for photo in photos if photo.id == selected_id)

    buffer = _working_copy(record)
    profiles = list_filter_profiles()

    with st.expander("Filter previews", expanded=False):
        _render_filter_previews(buffer, profiles)

    selected_profile = st.selectbox(
        "Filter",
        profiles,
        index=initial_filter_index(record, profiles),
        format_func=lambda profile: profile.name,
        key=f"filter_{record.id}",
    )
    adjustments = _render_adjustments()

    compositor = get_filter_compositor()
    preview = compositor.apply(compositor.apply(buffer, selected_profile), adjustments)

    col1, col2 = st.columns([2, 1])
    with col1:
        st.image(preview.to_image(), caption=selected_profile.effect or "Original", use_container_width=True)
    with col2:
        render_histogram(get_image_processor().analyze_histogram(preview))

    if st.button("💾 Save edit", type="primary", use_container_width=True):
        progress_bar = st.progress(ProgressMilestone.STARTED.value, text="Applying filter...")

        def on_progress(percent: int, stage: str) -> None:
            progress_bar.progress(percent, text=stage.replace("_", " ").capitalize())

        outcome = save_edit(
            record.id,
            selected_profile.id,
            adjustments=None if adjustments.is_identity() else adjustments,
            progress_callback=on_progress,
        )
        logger.info("edit_finished", status=outcome.status.value, photo_id=record.id)

        if outcome.status is OutcomeStatus.SUCCEEDED:
            error_display.display_success_message("Edit saved.")
            st.session_state.get("editor_images", {}).pop(record.image_url, None)
        else:
            progress_bar.empty()
            if outcome.error is not None:
                error_display.display_error(outcome.error.get_error_info())
            elif outcome.user_message:
                error_display.display_warning_message(outcome.user_message)
