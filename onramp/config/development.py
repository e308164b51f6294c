from .base import BaseConfig


class DevelopmentConfig(BaseConfig):
    """
    Development configuration.
    """

    DEBUG = True
    ENVIRONMENT = "development"

    SECRET_KEY = BaseConfig.SECRET_KEY or "dev-secret-key"
    LOG_LEVEL = "DEBUG"
    EXPOSE_ERROR_DETAILS = True

    SEED_DEFAULT_RATES = True
    WEBHOOK_SECRET = BaseConfig.WEBHOOK_SECRET or "dev-webhook-secret"
