"""Digital forms link distribution service."""
