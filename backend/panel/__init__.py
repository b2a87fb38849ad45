"""Admin panel backend: media upload pipeline for the chat/dating admin panel."""
