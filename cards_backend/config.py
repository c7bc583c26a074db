# config.py
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Auth
    SECRET_KEY = os.getenv("SECRET_KEY", "temporary_dev_secret")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 30))  # 30 days

    # Object storage (Supabase)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY", os.getenv("SUPABASE_ANON_KEY", ""))
    SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "business-cards")
    MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", 5 * 1024 * 1024))  # 5MB uploads

    # Short codes
    SHORT_CODE_LENGTH = int(os.getenv("SHORT_CODE_LENGTH", 10))
    SHORT_CODE_MAX_ATTEMPTS = int(os.getenv("SHORT_CODE_MAX_ATTEMPTS", 5))

    # Public links (share URL / QR code target)
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")

    # HTTP / logging
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def storage_configured():
        return bool(Settings.SUPABASE_URL and Settings.SUPABASE_KEY)
