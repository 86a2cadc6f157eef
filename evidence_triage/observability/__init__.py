"""Observability module with LangSmith tracing."""

from .tracing import TriageTracer, configure_langsmith, get_tracer, traced

__all__ = [
    "TriageTracer",
    "configure_langsmith",
    "get_tracer",
    "traced",
]
