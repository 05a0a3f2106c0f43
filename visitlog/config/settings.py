"""
Configuration module for the Visit Log application.
Handles environment variables and application settings.
"""
import os
from typing import Optional
from dotenv import load_dotenv

# Load .env from current working directory
load_dotenv()

class Config:
    """Application configuration class."""

    # Flask Configuration
    SECRET_KEY: str = os.getenv("SECRET_KEY", os.urandom(32).hex())
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    HOST: str = os.getenv("HOST", "127.0.0.1")  # More secure default
    PORT: int = int(os.getenv("PORT", "5000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR")
    CORS_ALLOW_ORIGIN: str = os.getenv("CORS_ALLOW_ORIGIN", "*")

    # MongoDB Configuration
    MONGODB_URI: Optional[str] = os.getenv("MONGODB_URI")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "visitlog")
    DB_CONNECTION_POOL_SIZE: int = int(os.getenv("DB_CONNECTION_POOL_SIZE", "50"))
    DB_SERVER_SELECTION_TIMEOUT_MS: int = int(os.getenv("DB_SERVER_SELECTION_TIMEOUT_MS", "5000"))

    # Authentication
    JWT_SECRET: Optional[str] = os.getenv("JWT_SECRET")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRY_SECONDS: int = int(os.getenv("JWT_EXPIRY_SECONDS", "86400"))  # 1 day
    # Fallback revocation TTL for tokens that carry no exp claim
    TOKEN_REVOCATION_DEFAULT_TTL: int = int(os.getenv("TOKEN_REVOCATION_DEFAULT_TTL", "3600"))
    # "memory" for a single process, "mongo" when running several instances
    TOKEN_REVOCATION_BACKEND: str = os.getenv("TOKEN_REVOCATION_BACKEND", "mongo").lower()

    # AWS Configuration (student photos)
    AWS_ACCESS_KEY_ID: Optional[str] = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: Optional[str] = os.getenv("AWS_SECRET_ACCESS_KEY")
    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    AWS_S3_BUCKET: Optional[str] = os.getenv("AWS_S3_BUCKET")
    AWS_MAX_RETRIES: int = int(os.getenv("AWS_MAX_RETRIES", "3"))

    # Photo Configuration
    PHOTO_MAX_UPLOAD_BYTES: int = int(os.getenv("PHOTO_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))  # 5MB
    PHOTO_MAX_WIDTH: int = int(os.getenv("PHOTO_MAX_WIDTH", "800"))
    PHOTO_MAX_HEIGHT: int = int(os.getenv("PHOTO_MAX_HEIGHT", "800"))
    PHOTO_JPEG_QUALITY: int = int(os.getenv("PHOTO_JPEG_QUALITY", "90"))
    # Request body cap for Flask; a base64 data URL is a third larger than the photo
    MAX_CONTENT_LENGTH: int = PHOTO_MAX_UPLOAD_BYTES * 2

    # QR Code Configuration
    QR_BOX_SIZE: int = int(os.getenv("QR_BOX_SIZE", "10"))
    QR_BORDER: int = int(os.getenv("QR_BORDER", "1"))

    # Scan Matching Settings
    FUZZY_MATCH_MIN_LENGTH: int = int(os.getenv("FUZZY_MATCH_MIN_LENGTH", "4"))
    FUZZY_MATCH_MAX_LENGTH: int = int(os.getenv("FUZZY_MATCH_MAX_LENGTH", "32"))
    FUZZY_MATCH_TIMEOUT_MS: int = int(os.getenv("FUZZY_MATCH_TIMEOUT_MS", "2000"))

    # Listing / Dashboard Settings
    RECENT_VISITS_DEFAULT_LIMIT: int = int(os.getenv("RECENT_VISITS_DEFAULT_LIMIT", "10"))
    HISTORY_DEFAULT_LIMIT: int = int(os.getenv("HISTORY_DEFAULT_LIMIT", "20"))
    MAX_PAGE_LIMIT: int = int(os.getenv("MAX_PAGE_LIMIT", "200"))
    TOP_PURPOSES_LIMIT: int = int(os.getenv("TOP_PURPOSES_LIMIT", "6"))
    TIMED_IN_STUDENTS_LIMIT: int = int(os.getenv("TIMED_IN_STUDENTS_LIMIT", "50"))

    # Live activity stream
    ACTIVITY_KEEPALIVE_SECONDS: int = int(os.getenv("ACTIVITY_KEEPALIVE_SECONDS", "20"))
    ACTIVITY_QUEUE_SIZE: int = int(os.getenv("ACTIVITY_QUEUE_SIZE", "100"))

    # Student number generation
    STUDENT_NO_PREFIX: str = os.getenv("STUDENT_NO_PREFIX", "S")
    STUDENT_NO_MAX_ATTEMPTS: int = int(os.getenv("STUDENT_NO_MAX_ATTEMPTS", "1000"))

    @staticmethod
    def validate() -> None:
        """Validate configuration settings."""
        # Validate required environment variables
        required_vars = [
            ("MONGODB_URI", Config.MONGODB_URI),
            ("JWT_SECRET", Config.JWT_SECRET),
        ]

        missing_vars = [var_name for var_name, var_value in required_vars if not var_value]
        if missing_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_vars)}")

        if Config.TOKEN_REVOCATION_BACKEND not in ("memory", "mongo"):
            raise ValueError("TOKEN_REVOCATION_BACKEND must be 'memory' or 'mongo'")

        # Validate numeric ranges
        if Config.JWT_EXPIRY_SECONDS < 60:
            raise ValueError("JWT_EXPIRY_SECONDS must be at least 60")

        if Config.FUZZY_MATCH_MIN_LENGTH < 1:
            raise ValueError("FUZZY_MATCH_MIN_LENGTH must be at least 1")
        if Config.FUZZY_MATCH_MAX_LENGTH < Config.FUZZY_MATCH_MIN_LENGTH:
            raise ValueError("FUZZY_MATCH_MAX_LENGTH must be >= FUZZY_MATCH_MIN_LENGTH")

        if Config.MAX_PAGE_LIMIT < 1:
            raise ValueError("MAX_PAGE_LIMIT must be at least 1")

        if Config.PHOTO_MAX_WIDTH < 1 or Config.PHOTO_MAX_HEIGHT < 1:
            raise ValueError("PHOTO_MAX_WIDTH and PHOTO_MAX_HEIGHT must be positive")
