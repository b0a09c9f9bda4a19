from pathlib import Path
from decouple import config, Csv
import sys, os
import environ
from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent

# Environment detection
def detect_environment():
    """Auto-detect the current environment"""
    env = config('ENVIRONMENT', default=None)
    if env:
        return env.lower()
    hostname = os.environ.get('HOSTNAME', '').lower()
    if any(x in hostname for x in ['prod', 'production']):
        return 'production'
    elif any(x in hostname for x in ['staging', 'stage']):
        return 'staging'
    return 'development'

def is_production():
    """Check if running in production"""
    return detect_environment() == 'production'

current_env = detect_environment()
TESTING = "pytest" in sys.modules or "test" in sys.argv

env = environ.Env()
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))


SECRET_KEY = config('SECRET_KEY', default='django-insecure-therapy-queue-dev-key')
DEBUG = config('DEBUG', default=not is_production(), cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())
CSRF_TRUSTED_ORIGINS = config('CSRF_TRUSTED_ORIGINS', default='', cast=Csv())

DEPLOYMENT_REGION = config('DEPLOYMENT_REGION', default='default')

# Database: PostgreSQL in deployment, SQLite for local work and tests
DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}
DATABASES['default']['ATOMIC_REQUESTS'] = False

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt",
    "corsheaders",
    "drf_spectacular",
    "core",
    "queue_management",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "backend.wsgi.application"

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"
    },
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.exception_handler.queue_exception_handler",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Therapy Queue API",
    "DESCRIPTION": "Capacity-bounded therapy queues per clinic: enrollment, priority ordering, live positions and wait estimates",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
    "SCHEMA_PATH_PREFIX": "/api/v1/",
}

# CORS: Cross-Origin Resource Sharing configuration for frontend access
CORS_ALLOW_ALL_ORIGINS = DEBUG  # Only allow all origins in development
CORS_ALLOWED_ORIGINS = config(
    "CORS_ALLOWED_ORIGINS",
    default="http://localhost:3000,http://localhost:8080",
    cast=Csv(),
)
CORS_ALLOW_CREDENTIALS = True  # Allow cookies/credentials in CORS requests

from datetime import timedelta

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(hours=24),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=30),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": False,
}

# ============================================================================
# THERAPY QUEUE CONFIGURATION
# ============================================================================

THERAPY_QUEUE = {
    'DEFAULT_MAX_CAPACITY': config('QUEUE_DEFAULT_MAX_CAPACITY', default=10, cast=int),
    'QUEUE_CACHE_TTL': config('QUEUE_CACHE_TTL', default=300, cast=int),  # 5 minutes
    'STATS_CACHE_TTL': config('QUEUE_STATS_CACHE_TTL', default=180, cast=int),  # 3 minutes
    # Per-slot minutes by therapy type, merged over the built-in table
    'SLOT_MINUTES': {},
    'DEFAULT_SLOT_MINUTES': config('QUEUE_DEFAULT_SLOT_MINUTES', default=20, cast=int),
}

# ============================================================================
# CELERY
# ============================================================================

CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="memory://localhost/")
CELERY_RESULT_BACKEND = config("CELERY_RESULT_BACKEND", default="cache+memory://")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_ENABLE_UTC = True
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60
CELERY_RESULT_EXPIRES = 3600
CELERY_TASK_ALWAYS_EAGER = TESTING

QUEUE_RECONCILE_INTERVAL_MINUTES = config('QUEUE_RECONCILE_INTERVAL_MINUTES', default=15, cast=int)

CELERY_BEAT_SCHEDULE = {
    'reconcile-therapy-queues': {
        'task': 'queue_management.tasks.reconcile_active_queues',
        'schedule': crontab(minute=f'*/{QUEUE_RECONCILE_INTERVAL_MINUTES}'),
        'options': {'expires': 60 * 10}  # Expire after 10 minutes if not executed
    },
}

# Cache Configuration
# Local memory cache by default; point CACHE_BACKEND at a shared backend
# when running more than one process
CACHES = {
    "default": {
        "BACKEND": config("CACHE_BACKEND", default="django.core.cache.backends.locmem.LocMemCache"),
        "LOCATION": config("CACHE_LOCATION", default="therapy-queue-cache"),
        "OPTIONS": {
            "MAX_ENTRIES": 1000,  # Limit cache size to 1000 entries
        }
    }
}

# Override for testing
if TESTING:
    CACHES["default"]["BACKEND"] = "django.core.cache.backends.locmem.LocMemCache"
    CACHES["default"]["LOCATION"] = "unique-test-cache"

SESSION_ENGINE = "django.contrib.sessions.backends.db"

# ============================================================================
# LOGGING
# ============================================================================

from core.logging_config import get_logging_config

LOGGING = get_logging_config(
    BASE_DIR,
    region=DEPLOYMENT_REGION,
    level=config('LOG_LEVEL', default='INFO'),
)

# ============================================================================
# SENTRY
# ============================================================================

SENTRY_DSN = config("SENTRY_DSN", default="")

if SENTRY_DSN and not TESTING:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.celery import CeleryIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
            CeleryIntegration(),
        ],
        traces_sample_rate=config("SENTRY_TRACES_SAMPLE_RATE", default=0.1, cast=float),
        send_default_pii=False,
        environment=current_env,
        release=config("RELEASE_VERSION", default="1.0.0"),
        before_send=lambda event, hint: event if not DEBUG else None,
    )
