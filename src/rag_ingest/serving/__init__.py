"""
Serving — FastAPI application for the ingestion pipeline.

This module exposes document ingestion and single-text embedding over
HTTP so the pipeline can be deployed as a standalone container.
"""
