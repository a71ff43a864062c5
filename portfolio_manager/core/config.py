import os
from os import getenv
from dotenv import load_dotenv

load_dotenv(os.path.join(os.getcwd(), ".env"), override=True)


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


DEBUG = (getenv("DEBUG") or "").lower() in ("1", "true", "yes")

DATABASE_URL = getenv("DATABASE_URL") or ""
# Credential that bypasses row-level policies, only handed to the portfolio managers
SERVICE_ROLE_DATABASE_URL = getenv("SERVICE_ROLE_DATABASE_URL") or DATABASE_URL
REDIS_URL = getenv("REDIS_URL") or "redis://localhost:6379/0"
JWT_SECRET_KEY = getenv("JWT_SECRET_KEY") or ""
BREVO_API_KEY = getenv("BREVO_API_KEY") or ""
FRONTEND_URL = getenv("FRONTEND_URL") or "http://localhost:3000"

PORTFOLIO_INVITE_TEMPLATE_ID = int(getenv("PORTFOLIO_INVITE_TEMPLATE_ID") or "5")

PRICE_IDS_LITE = _csv(getenv("PRICE_IDS_LITE") or "")
PRICE_IDS_STARTER = _csv(getenv("PRICE_IDS_STARTER") or "")
PRICE_IDS_GROWTH = _csv(getenv("PRICE_IDS_GROWTH") or "")
PRICE_IDS_ENTERPRISE = _csv(getenv("PRICE_IDS_ENTERPRISE") or "")
PRICE_ID_GROWTH_SEAT = getenv("PRICE_ID_GROWTH_SEAT") or ""

INVITATION_EXPIRY_DAYS = int(getenv("INVITATION_EXPIRY_DAYS") or "7")
BASE_PORTFOLIO_SEATS = int(getenv("BASE_PORTFOLIO_SEATS") or "3")
