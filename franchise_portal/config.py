import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Partner portal base URL (used in emails and invite links)
PORTAL_URL = os.getenv("PORTAL_URL", "https://success-tutoring-test.web.app")

# Sender identity for every outbound email
FROM_EMAIL = os.getenv("FROM_EMAIL", "michael@successtutoring.com")
FROM_NAME = os.getenv("FROM_NAME", "Success Tutoring")

# Shared secret expected in X-Trigger-Token on /events/* deliveries
TRIGGER_SECRET = os.getenv("TRIGGER_SECRET")

# Stripe Connect Configuration
STRIPE_API_URL = os.getenv("STRIPE_API_URL", "https://api.stripe.com/v1")
STRIPE_DEFAULT_CURRENCY = os.getenv("STRIPE_DEFAULT_CURRENCY", "aud")
STRIPE_DEFAULT_COUNTRY = os.getenv("STRIPE_DEFAULT_COUNTRY", "AU")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://success-tutoring-test.web.app,http://localhost:5173,http://localhost:3000",
).split(",")


# Secrets below may be provisioned only at invocation time, so they are read
# on every call instead of being captured at import.
def get_resend_api_key() -> Optional[str]:
    return os.getenv("RESEND_API_KEY")


def get_stripe_secret_key() -> Optional[str]:
    return os.getenv("STRIPE_SECRET_KEY")
