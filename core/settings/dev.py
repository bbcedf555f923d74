from .base import *  # noqa

DEBUG = True
ALLOWED_HOSTS = ["*"]
CELERY_TASK_ALWAYS_EAGER = True
LOGGING["root"]["handlers"] = ["console"]  # type: ignore[index]
LOGGING["loggers"]["apps"]["handlers"] = ["console"]  # type: ignore[index]
