"""Tracker webhook ingestion and run creation."""
