"""Core configuration, logging, errors, auth and rate limiting."""
