import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Local SQLite file unless a real database is configured
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hvac_service.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "hvac-service")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for links sent to clients and technicians
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Attendance dates and late/early-leave checks are evaluated in this timezone
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Asia/Jakarta")

# Printed on generated reports
COMPANY_NAME = os.getenv("COMPANY_NAME", "HVAC Djawara Service")

# Signed link lifetimes (seconds)
INVITATION_MAX_AGE = int(os.getenv("INVITATION_MAX_AGE", str(7 * 24 * 3600)))
REPORT_LINK_MAX_AGE = int(os.getenv("REPORT_LINK_MAX_AGE", str(30 * 24 * 3600)))

# How far ahead the maintenance generator creates orders
MAINTENANCE_HORIZON_DAYS = int(os.getenv("MAINTENANCE_HORIZON_DAYS", "7"))

# Comma-separated browser origins allowed by CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]
