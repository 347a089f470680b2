"""Upstream HTTP client for the XML API."""
