# tests/fixtures/constants.py
"""Values shared by conftest (env bootstrap) and fixtures. No app imports here."""

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
STREAM_BASE = "https://stream.example.test"
DOWNLOAD_BASE = "https://dl.example.test"
