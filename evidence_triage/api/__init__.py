"""HTTP API for evidence triage."""
