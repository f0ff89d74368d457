"""Packaged JSON schemas for scangate payloads and reports."""
