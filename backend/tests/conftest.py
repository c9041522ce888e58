"""Root conftest: shared test configuration."""

import os

# Tests never talk to a real database, identity provider or messaging gateway
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("LOG_FORMAT", "text")
for _var in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_FROM"):
    os.environ.pop(_var, None)
