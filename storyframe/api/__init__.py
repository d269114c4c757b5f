"""Storyframe HTTP API."""
