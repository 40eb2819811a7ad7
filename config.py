# ==========================================================================================================
# -------------- Configuration file for the PrimeEarn Flask application ------------------------------------
# ==========================================================================================================
import os
from dotenv import load_dotenv

from logger import log_dir


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))

DEFAULT_REFERRAL_CODES = (
    "PRIME2023",
    "EARN800",
    "NIGERIA1",
    "REF888",
    "BONUS777",
    "WELCOME100",
    "EARNMORE",
    "GETPAID",
)


def _referral_codes():
    raw = os.getenv("REFERRAL_CODES")
    if not raw:
        return DEFAULT_REFERRAL_CODES
    return tuple(code.strip().upper() for code in raw.split(",") if code.strip())


def database_url(url=None):
    """Point postgres URLs at the pg8000 driver; default to a local sqlite file."""
    if not url:
        return f"sqlite:///{os.path.join(basedir, 'instance', 'primeearn.db')}"
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            return url.replace(scheme, "postgresql+pg8000://", 1)
    return url


class Config:

    SECRET_KEY = os.getenv("SECRET_KEY")
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "30"))

    FLASK_ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")
    TESTING = False

    SQLALCHEMY_DATABASE_URI = database_url(os.getenv("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    API_PREFIX = os.getenv("API_PREFIX", "/api/users")
    LOG_DIR = log_dir()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Business rules
    REFERRAL_CODES = _referral_codes()
    WELCOME_BONUS = 800
    PREMIUM_BONUS = 1000
    PREMIUM_FEE = 5000
    PREMIUM_DAYS = 30
    PREMIUM_REWARD_MULTIPLIER = 1.5
    MIN_WITHDRAWAL = int(os.getenv("MIN_WITHDRAWAL", "10000"))
    MAX_AMOUNT = int(os.getenv("MAX_AMOUNT", "1000000000"))
    RECENT_TRANSACTIONS_LIMIT = 10


class DevelopmentConfig(Config):
    FLASK_ENV = "development"
    DEBUG = True
    SECRET_KEY = os.getenv("SECRET_KEY", "dev_key_change_me")
    JWT_SECRET = os.getenv("JWT_SECRET", "dev_jwt_secret_change_me_0123456789abcdef")


class TestingConfig(Config):
    FLASK_ENV = "testing"
    TESTING = True
    DEBUG = False
    SECRET_KEY = "testing-secret-key"
    JWT_SECRET = "testing-jwt-secret-0123456789abcdef0123456789"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REFERRAL_CODES = DEFAULT_REFERRAL_CODES
    MIN_WITHDRAWAL = 10000
