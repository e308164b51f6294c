from .base import BaseConfig, ConfigurationError


class ProductionConfig(BaseConfig):
    """
    Production configuration.
    """

    DEBUG = False
    ENVIRONMENT = "production"

    RATELIMIT_STORAGE_URI = BaseConfig.REDIS_URL

    @staticmethod
    def validate(config):
        """Fail fast on settings that are unsafe outside development."""
        missing = []

        if not config.get("SECRET_KEY"):
            missing.append("SECRET_KEY")

        provider = config.get("PAYMENT_PROVIDER")
        if provider == "mock":
            raise ConfigurationError("PAYMENT_PROVIDER=mock is not allowed in production")
        if provider == "paystack" and not config.get("PAYSTACK_SECRET_KEY"):
            missing.append("PAYSTACK_SECRET_KEY")
        if provider == "flutterwave" and not config.get("FLUTTERWAVE_SECRET_KEY"):
            missing.append("FLUTTERWAVE_SECRET_KEY")

        if missing:
            raise ConfigurationError(f"Missing required settings: {missing}")

        if "sqlite" in config.get("SQLALCHEMY_DATABASE_URI", "").lower():
            raise ConfigurationError("SQLite is not suitable for production")
