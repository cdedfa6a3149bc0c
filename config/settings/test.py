"""Test settings for the booking engine.

File-backed SQLite, local-memory cache and eager Celery so the test suite
runs without external services. The PMS adapter stays disabled; tests that
need it build a client explicitly.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

# A file database so threaded lock tests get separate connections to the
# same data. IMMEDIATE transactions take the write lock at BEGIN; concurrent
# writers queue on the busy timeout instead of failing on lock upgrade.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test-db.sqlite3',
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': 20,
        },
        'TEST': {
            'NAME': BASE_DIR / 'test-db.sqlite3',
        },
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'stay-booking-tests',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PMS_CLIENT_ID = ''
PMS_RETRY_DELAY_SECONDS = 0

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "WARNING"},
}
