"""Storyframe API routers."""
