"""Utility modules for the evidence triage service."""

from .polling import PollOutcome, poll_until

__all__ = ["PollOutcome", "poll_until"]
