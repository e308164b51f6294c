import os


class ConfigurationError(Exception):
    """
    Raised when an invalid or unsupported configuration is requested.
    """
    pass


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    """
    Base configuration shared by all environments.
    """

    # Flask
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv("SECRET_KEY")
    JSON_SORT_KEYS = False

    # Application
    APP_NAME = "EaseCrypt On-Ramp"
    ENVIRONMENT = "base"

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///onramp.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_REQUESTS = _env_bool("LOG_REQUESTS")
    EXPOSE_ERROR_DETAILS = False

    # CORS (Telegram WebApp frontend)
    FRONTEND_URL = os.getenv("FRONTEND_URL")

    # Redis / Celery
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CELERY = {
        "broker_url": os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
        "result_backend": os.getenv("CELERY_RESULT_BACKEND", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
        "task_ignore_result": True,
    }

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = "100 per 15 minutes"
    RATELIMIT_HEADERS_ENABLED = True

    # Metrics / error tracking
    METRICS_ENABLED = _env_bool("METRICS_ENABLED")
    SENTRY_DSN = os.getenv("SENTRY_DSN")

    # Price feed
    COINGECKO_BASE_URL = os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
    COINGECKO_API_KEY = os.getenv("COINGECKO_API_KEY")
    RATE_FEED_TIMEOUT = 10
    RATE_CURRENT_TTL = 30
    RATE_FALLBACK_TTL = 3600
    RATE_CACHE_SWEEP_INTERVAL = 300
    SEED_DEFAULT_RATES = False

    # Pricing
    MIN_AMOUNT_MINOR = 100_000       # ₦1,000
    MAX_AMOUNT_MINOR = 50_000_000    # ₦500,000
    SERVICE_FEE_RATE = "0.01"
    NETWORK_FEE_MINOR = 5_000        # ₦50
    QUOTE_VALIDITY_SECONDS = 600

    # Payment sessions
    PAYMENT_SESSION_TTL_SECONDS = 600
    SESSION_CLEANUP_INTERVAL = 60

    # Payment providers
    PAYMENT_PROVIDER = os.getenv("PAYMENT_PROVIDER", "mock").lower()
    WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET")
    PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY")
    PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
    PAYSTACK_PREFERRED_BANK = os.getenv("PAYSTACK_PREFERRED_BANK", "wema-bank")
    FLUTTERWAVE_SECRET_KEY = os.getenv("FLUTTERWAVE_SECRET_KEY")
    FLUTTERWAVE_BASE_URL = os.getenv("FLUTTERWAVE_BASE_URL", "https://api.flutterwave.com/v3")
    CUSTOMER_EMAIL_DOMAIN = os.getenv("CUSTOMER_EMAIL_DOMAIN", "customers.easecrypt.app")
    PAYMENT_TIMEOUT = 15

    # On-chain transfers
    STARKNET_NETWORK = os.getenv("STARKNET_NETWORK", "mainnet")
    TRANSFER_RELAY_URL = os.getenv("TRANSFER_RELAY_URL")
    TRANSFER_RELAY_API_KEY = os.getenv("TRANSFER_RELAY_API_KEY")
    TRANSFER_TIMEOUT = 60
    TRANSFER_CONFIRMATION_TIMEOUT = 180  # below the Celery soft time limit
    TRANSFER_POLL_INTERVAL = 5

    @staticmethod
    def validate(config):
        """Hook for environment-specific checks on the resolved app config."""
        return None
