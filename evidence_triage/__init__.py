"""
Evidence Triage Service.

Uploads litigation evidence to a hosted document vault, waits for remote
ingestion and OCR, classifies each document with an LLM and keeps a local
evidence cache that can be filtered and searched.
"""

__version__ = "0.1.0"
