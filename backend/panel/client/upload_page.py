"""
Media upload page for the admin panel.

Run with:
    streamlit run backend/panel/client/upload_page.py

The session token comes from ``PANEL_SESSION_TOKEN`` or the sidebar.
"""

import logging
import os

import streamlit as st

from panel.client.orchestrator import UploadOrchestrator
from panel.client.streamlit_surface import get_surface, render_upload_surface
from panel.client.surface import UploadSurface
from panel.client.transport import UploadTransport
from panel.config import get_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_surface(token: str) -> UploadSurface:
    config = get_config()
    transport = UploadTransport(config.client.base_url, session_token=token)
    orchestrator = UploadOrchestrator.from_settings(transport, config.uploads)
    logger.info("Upload surface created for %s", config.client.base_url)
    return UploadSurface.from_settings(orchestrator, config.uploads, delete_remote=True)


def main():
    st.set_page_config(page_title="Media Uploads", page_icon="📁")
    st.title("📁 Media Uploads")
    token = os.environ.get("PANEL_SESSION_TOKEN") or st.sidebar.text_input(
        "Session token", type="password"
    )
    if not token:
        st.info("Sign in to the panel and paste your session token to upload files.")
        return

    surface = get_surface(lambda: build_surface(token))
    view = render_upload_surface(surface)
    if view.uploading:
        st.caption("Files are uploading...")


if __name__ == "__main__":
    main()
