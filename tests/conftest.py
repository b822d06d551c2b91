"""
Root pytest configuration and shared fixtures.

This file contains configuration and fixtures shared across all test types.
Directory-specific conftest.py files can override or extend these fixtures.
"""

import os

# Keep unit tests away from any real SMTP / Twilio configuration in a local .env
for _var in ("SMTP_HOST", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_PHONE_NUMBER"):
    os.environ.pop(_var, None)

os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-with-enough-length")
