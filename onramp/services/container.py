"""
Service container.

Every long-lived service object is built once per application in
``init_services`` and stored on ``app.extensions["onramp"]``. Request handlers,
CLI commands and Celery tasks reach them through ``get_services()``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from flask import current_app

from onramp.config import FeatureFlags
from onramp.payments.providers import build_provider
from onramp.services.checkout import Checkout
from onramp.services.payment_sessions import PaymentSessionManager
from onramp.services.quote_engine import QuoteEngine
from onramp.services.rate_cache import RateCache
from onramp.services.rate_feed import CoinGeckoRateFeed
from onramp.services.rate_service import RateService
from onramp.services.sweeper import PeriodicSweeper
from onramp.services.transaction_ledger import AmountLimits, TransactionLedger
from onramp.services.transfer_gateway import build_transfer_gateway
from onramp.services.transfer_trigger import TransferTrigger
from onramp.services.webhook_processor import WebhookProcessor

logger = logging.getLogger(__name__)

EXTENSION_KEY = "onramp"


@dataclass
class OnrampServices:
    flags: FeatureFlags
    limits: AmountLimits
    rate_cache: RateCache
    rates: RateService
    quotes: QuoteEngine
    ledger: TransactionLedger
    sessions: PaymentSessionManager
    provider: Any
    trigger: TransferTrigger
    checkout: Checkout
    webhooks: WebhookProcessor
    rate_sweeper: Optional[PeriodicSweeper] = None

    def shutdown(self):
        if self.rate_sweeper is not None:
            self.rate_sweeper.stop(timeout=1)
            self.rate_sweeper = None


def build_services(config, flags: FeatureFlags, dispatch: Optional[Callable[[str], Any]] = None) -> OnrampServices:
    limits = AmountLimits(config["MIN_AMOUNT_MINOR"], config["MAX_AMOUNT_MINOR"])
    rate_cache = RateCache(config["RATE_CURRENT_TTL"], config["RATE_FALLBACK_TTL"])
    feed = CoinGeckoRateFeed(
        base_url=config["COINGECKO_BASE_URL"],
        api_key=config.get("COINGECKO_API_KEY"),
        timeout=config["RATE_FEED_TIMEOUT"],
    )
    quotes = QuoteEngine(
        rate_cache,
        network_fee=config["NETWORK_FEE_MINOR"],
        service_fee_rate=config["SERVICE_FEE_RATE"],
        validity_seconds=config["QUOTE_VALIDITY_SECONDS"],
    )
    ledger = TransactionLedger(limits)
    sessions = PaymentSessionManager(default_ttl=config["PAYMENT_SESSION_TTL_SECONDS"])
    provider = build_provider(config)
    trigger = TransferTrigger(ledger, sessions, build_transfer_gateway(config, flags), dispatch=dispatch)

    return OnrampServices(
        flags=flags,
        limits=limits,
        rate_cache=rate_cache,
        rates=RateService(rate_cache, feed),
        quotes=quotes,
        ledger=ledger,
        sessions=sessions,
        provider=provider,
        trigger=trigger,
        checkout=Checkout(
            quotes,
            ledger,
            sessions,
            provider,
            customer_email_domain=config["CUSTOMER_EMAIL_DOMAIN"],
            session_ttl=config["PAYMENT_SESSION_TTL_SECONDS"],
        ),
        webhooks=WebhookProcessor(provider, ledger, trigger),
    )


def init_services(app, dispatch=None) -> OnrampServices:
    services = build_services(app.config, app.config["FEATURE_FLAGS"], dispatch=dispatch)
    app.extensions[EXTENSION_KEY] = services
    logger.info(
        "Services initialized",
        extra={"provider": services.provider.name, "gateway": services.trigger.gateway.name},
    )
    return services


def start_rate_sweeper(app, services: OnrampServices):
    interval = app.config.get("RATE_CACHE_SWEEP_INTERVAL", 0)
    if not interval or app.testing:
        return None
    services.rate_sweeper = PeriodicSweeper(services.rate_cache.sweep, interval, name="rate-cache-sweeper").start()
    return services.rate_sweeper


def get_services(app=None) -> OnrampServices:
    return (app or current_app).extensions[EXTENSION_KEY]
