"""Ingestion pipeline: extract -> chunk -> embed -> store."""
