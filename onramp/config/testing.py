from .base import BaseConfig


class TestingConfig(BaseConfig):
    """
    Test configuration: in-process Celery, no rate limiting, no background threads.
    """

    TESTING = True
    ENVIRONMENT = "testing"

    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"

    CELERY = {
        "broker_url": "memory://",
        "result_backend": "cache+memory://",
        "task_always_eager": True,
        "task_eager_propagates": True,
        "task_ignore_result": True,
    }

    RATELIMIT_ENABLED = False
    RATE_CACHE_SWEEP_INTERVAL = 0
    PAYMENT_PROVIDER = "mock"
    WEBHOOK_SECRET = "test-webhook-secret"
    COINGECKO_API_KEY = None
