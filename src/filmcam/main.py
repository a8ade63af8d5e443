"""
Main Streamlit application for filmcam.

This is the entry point for the camera and editor web application.
"""

import streamlit as st

from filmcam.config import get_default_user_id
from filmcam.logging_config import configure_structured_logging, get_logger
from filmcam.ui.components.error_display import error_context, get_error_display_manager
from filmcam.ui.pages.camera import render_camera_page
from filmcam.ui.pages.editor import render_editor_page

# Configure structured logging
configure_structured_logging()
logger = get_logger(__name__)
error_display = get_error_display_manager()

PAGES = {
    "camera": ("📷 Camera", render_camera_page),
    "editor": ("🎨 Editor", render_editor_page),
}


def initialize_session_state() -> None:
    """Initialize session state variables."""
    if "user_id" not in st.session_state:
        st.session_state.user_id = get_default_user_id()

    if "current_page" not in st.session_state:
        st.session_state.current_page = "camera"


def render_sidebar() -> None:
    with st.sidebar:
        st.markdown("# 🎞️ filmcam")
        for page_id, (label, _) in PAGES.items():
            button_type = "primary" if st.session_state.current_page == page_id else "secondary"
            if st.button(label, use_container_width=True, type=button_type, key=f"nav_{page_id}"):
                st.session_state.current_page = page_id
                st.rerun()


def render_main_content() -> None:
    """Render the main content area based on current page with error handling."""
    current_page = st.session_state.current_page

    with error_context():
        if current_page in PAGES:
            _, render_page = PAGES[current_page]
            render_page()
        else:
            error_display.display_warning_message(f"Page '{current_page}' was not found.")


def main() -> None:
    """Main application entry point."""
    logger.info("application_starting", page="main")

    st.set_page_config(
        page_title="filmcam",
        page_icon="🎞️",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    initialize_session_state()
    logger.info("session_initialized", user_id=st.session_state.user_id, current_page=st.session_state.current_page)

    render_sidebar()
    with st.container():
        render_main_content()


if __name__ == "__main__":
    main()
