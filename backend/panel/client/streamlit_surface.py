"""
Streamlit renderer for an UploadSurface.

Drag-and-drop and browse both come from ``st.file_uploader``. The surface is
kept in ``st.session_state`` so its orchestrator, and the previews it owns,
survive reruns; each gesture is driven with ``asyncio.run``. When the session
state is dropped the orchestrator is closed, releasing outstanding previews.

Usage:
    surface = get_surface(lambda: build_surface(token))
    render_upload_surface(surface)
"""

import asyncio
import logging
import weakref
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import unquote, urlsplit

import streamlit as st

from .models import LocalFile
from .surface import SurfaceItem, SurfaceView, UploadSurface

logger = logging.getLogger(__name__)

SURFACE_KEY = "panel_upload_surface"


def get_surface(factory: Callable[[], UploadSurface], key: str = SURFACE_KEY) -> UploadSurface:
    """Return the surface stored in session state, creating it on first run."""
    if key not in st.session_state:
        surface = factory()
        # Must not reference the surface itself, or it is never collected.
        weakref.finalize(surface, surface.orchestrator.close)
        st.session_state[key] = surface
    return st.session_state[key]


def _extension_filter(accept: Optional[str]) -> Optional[List[str]]:
    """Extensions for ``st.file_uploader(type=...)``; MIME tokens are checked by the surface."""
    if not accept:
        return None
    extensions = [t.strip().lstrip(".") for t in accept.split(",") if t.strip().startswith(".")]
    return extensions or None


def _image_source(url: str) -> str:
    parts = urlsplit(url)
    if parts.scheme == "file":
        return str(Path(unquote(parts.path)))
    return url


def _signature_key(key: str) -> str:
    return f"{key}-signature"


def _forget_selection(key: str) -> None:
    """Let the next selection be submitted even if it repeats the last one."""
    st.session_state.pop(_signature_key(key), None)


def _render_item(surface: UploadSurface, item: SurfaceItem, key: str) -> None:
    thumb_col, info_col, action_col = st.columns([1, 4, 1])
    with thumb_col:
        if item.thumbnail_url:
            st.image(_image_source(item.thumbnail_url), width=48)
        else:
            st.write("🖼️" if item.is_image else "📄")
    with info_col:
        st.markdown(f"**{item.name}**")
        st.caption(item.size_label)
    with action_col:
        if item.status == "uploading":
            st.write("⏳")
        elif item.status == "committed":
            st.write("✅")
        if st.button("🗑️", key=f"remove-{item.key}", disabled=not item.removable):
            asyncio.run(surface.remove(item.key))
            _forget_selection(key)
            st.rerun()


def render_upload_surface(surface: UploadSurface, key: str = "panel-upload") -> SurfaceView:
    """
    Render the upload surface widget.

    Args:
        surface: Upload surface kept in session state
        key: Widget key prefix, unique per surface on the page

    Returns:
        The view that was drawn
    """
    view = surface.render()

    selected = st.file_uploader(
        view.dropzone_text,
        type=_extension_filter(surface.accept),
        accept_multiple_files=surface.multiple,
        disabled=view.disabled or view.uploading,
        help=view.limit_hint,
        key=f"{key}-input",
    )

    if selected:
        selected = selected if isinstance(selected, list) else [selected]
        # file_id changes on every pick, so re-picking the same file resubmits.
        signature = tuple(f.file_id for f in selected)

        # Streamlit keeps the selection across reruns; submit each one once.
        if st.session_state.get(_signature_key(key)) != signature:
            st.session_state[_signature_key(key)] = signature
            candidates = [
                LocalFile.from_bytes(f.name, f.getvalue(), f.type or None) for f in selected
            ]
            with st.spinner("Uploading files..."):
                asyncio.run(surface.drop(candidates))
            view = surface.render()
    else:
        _forget_selection(key)
        st.caption(view.placeholder)

    if view.error:
        error_col, dismiss_col = st.columns([5, 1])
        error_col.error(view.error)
        if dismiss_col.button("✕", key=f"{key}-dismiss"):
            surface.dismiss_error()
            _forget_selection(key)
            st.rerun()

    if view.items:
        st.subheader(view.heading)
        if view.show_clear_all and st.button("Clear all", key=f"{key}-clear", disabled=view.uploading):
            surface.clear_all()
            _forget_selection(key)
            st.rerun()
        for item in view.items:
            _render_item(surface, item, key)

    return view
