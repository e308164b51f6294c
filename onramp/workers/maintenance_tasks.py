from celery import shared_task

from onramp.services.container import get_services


@shared_task(name="onramp.cleanup_expired_sessions", ignore_result=True)
def cleanup_expired_sessions():
    return get_services().sessions.cleanup_expired()
