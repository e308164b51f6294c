from datetime import timedelta


def build_beat_schedule(config):
    interval = config.get("SESSION_CLEANUP_INTERVAL", 60)
    if not interval:
        return {}
    return {
        "cleanup-expired-payment-sessions": {
            "task": "onramp.cleanup_expired_sessions",
            "schedule": timedelta(seconds=interval),
        },
    }
