import time

import redis
from flask import current_app
from sqlalchemy import text

from onramp.domain.tokens import SUPPORTED_TOKENS
from onramp.extensions import db
from onramp.services.container import get_services


def _check_database():
    start = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        latency = round((time.time() - start) * 1000, 2)
        return {"status": "ok", "latency_ms": latency}
    except Exception as e:
        db.session.rollback()
        return {"status": "error", "error": str(e)}


def _check_redis():
    url = current_app.config.get("REDIS_URL")
    if not url or current_app.testing:
        return {"status": "skipped", "reason": "REDIS_URL not set"}

    start = time.time()
    try:
        client = redis.from_url(url, socket_connect_timeout=2)
        client.ping()
        latency = round((time.time() - start) * 1000, 2)
        return {"status": "ok", "latency_ms": latency}
    except Exception as e:
        return {"status": "error", "error": str(e)}


def _check_rates():
    """
    Rate coverage. Missing rates degrade quoting but not the service, so this
    check never reports an error on its own.
    """
    cache = get_services().rate_cache
    current = [s for s in SUPPORTED_TOKENS if cache.get_current(s) is not None]
    fallback_only = [s for s in SUPPORTED_TOKENS if s not in current and cache.get_fallback(s) is not None]
    missing = [s for s in SUPPORTED_TOKENS if s not in current and s not in fallback_only]
    return {
        "status": "ok" if not missing else "warning",
        "current": current,
        "fallback_only": fallback_only,
        "missing": missing,
    }


def run_health_checks():
    """
    Master health runner used by route.
    """
    started = time.time()

    checks = {
        "database": _check_database(),
        "redis": _check_redis(),
        "rates": _check_rates(),
    }

    overall = "ok"

    for c in checks.values():
        if c["status"] == "error":
            overall = "degraded"

    return {
        "status": overall,
        "timestamp": int(time.time()),
        "checks": checks,
        "duration_ms": round((time.time() - started) * 1000, 2),
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
    }
