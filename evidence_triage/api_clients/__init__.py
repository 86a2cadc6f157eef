"""API clients for the Case.dev vault, OCR and LLM services."""

from .base import APIError, BaseAPIClient, ConfigurationError, RateLimitError, RemoteTimeoutError
from .classifier import ClassificationClient, parse_classification
from .ocr import OCRClient
from .vault import VaultClient

__all__ = [
    "APIError",
    "BaseAPIClient",
    "ConfigurationError",
    "RateLimitError",
    "RemoteTimeoutError",
    "ClassificationClient",
    "parse_classification",
    "OCRClient",
    "VaultClient",
]
