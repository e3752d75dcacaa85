"""Escalation services: matching, preference filtering, dispatch and scheduling."""
