"""HTTP API for the escalation engine."""
