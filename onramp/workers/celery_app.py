import logging

from celery import Celery, Task
from celery.signals import setup_logging as celery_setup_logging
from flask import has_app_context
from kombu import Queue

from onramp.logging_config import configure_worker_logging
from onramp.observability.metrics import record_task
from onramp.workers.celerybeat import build_beat_schedule

logger = logging.getLogger(__name__)


def celery_init_app(app):
    """Bind a Celery instance to the Flask app so every task runs inside its app context."""

    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            if has_app_context():
                return self._observed(*args, **kwargs)
            with app.app_context():
                return self._observed(*args, **kwargs)

        def _observed(self, *args, **kwargs):
            try:
                result = self.run(*args, **kwargs)
            except Exception:
                record_task(self.name, "failure")
                logger.exception("Task failed", extra={"task": self.name, "task_args": list(args)})
                raise
            record_task(self.name, "success")
            return result

    celery_app = Celery(app.name, task_cls=FlaskTask)
    celery_app.config_from_object(app.config["CELERY"])
    celery_app.conf.update(
        # Serialization
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],

        timezone="UTC",
        enable_utc=True,

        # Reliability
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_reject_on_worker_lost=True,

        task_default_queue="default",
        task_queues=(
            Queue("default"),
            Queue("transfers"),
        ),
        task_routes={"onramp.execute_transfer": {"queue": "transfers"}},

        task_time_limit=300,
        task_soft_time_limit=240,

        beat_schedule=build_beat_schedule(app.config),
    )
    celery_app.set_default()
    app.extensions["celery"] = celery_app

    # register tasks on this app
    from onramp.workers import maintenance_tasks, transfer_tasks  # noqa: F401

    return celery_app


@celery_setup_logging.connect
def _configure_celery_logging(loglevel=None, **kwargs):
    configure_worker_logging(logging.getLevelName(loglevel) if isinstance(loglevel, int) else (loglevel or "INFO"))
