"""Command-line interface for evidence triage."""
