"""Django settings for the registration API.

Values come from the environment (or a .env file) through python-decouple.
"""

import re
import typing as t
from decimal import Decimal
from pathlib import Path

import structlog
from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config("SECRET_KEY", default="django-insecure-dev-only")
DEBUG = config("DEBUG", default=False, cast=bool)
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="localhost,127.0.0.1,testserver", cast=Csv())

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "accounts",
    "events",
    "registrations",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASE_ENGINE = config("DATABASE_ENGINE", default="django.db.backends.sqlite3")
DATABASES = {
    "default": {
        "ENGINE": DATABASE_ENGINE,
        "NAME": config("DATABASE_NAME", default=str(BASE_DIR / "db.sqlite3")),
        "USER": config("DATABASE_USER", default=""),
        "PASSWORD": config("DATABASE_PASSWORD", default=""),
        "HOST": config("DATABASE_HOST", default=""),
        "PORT": config("DATABASE_PORT", default=""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True
STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["accounts.handlers.authentication.BearerTokenAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "common.exception_handler.domain_exception_handler",
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
}

# Tokens
JWT_SECRET = config("JWT_SECRET", default=SECRET_KEY)
JWT_REFRESH_SECRET = config("JWT_REFRESH_SECRET", default=f"{SECRET_KEY}-refresh")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TTL_MINUTES = config("ACCESS_TOKEN_TTL_MINUTES", default=15, cast=int)
REFRESH_TOKEN_TTL_DAYS = config("REFRESH_TOKEN_TTL_DAYS", default=7, cast=int)

# AES-256-GCM key for provider OAuth tokens, 64 hex chars
ENCRYPTION_KEY = config("ENCRYPTION_KEY", default="0" * 64)

# Payments
APP_URL = config("APP_URL", default="http://localhost:3000")
MP_CLIENT_ID = config("MP_CLIENT_ID", default="")
MP_CLIENT_SECRET = config("MP_CLIENT_SECRET", default="")
MP_WEBHOOK_SECRET = config("MP_WEBHOOK_SECRET", default="")
MP_WEBHOOK_URL = config("MP_WEBHOOK_URL", default=f"{APP_URL}/api/webhooks/mercadopago")
MP_ACCESS_TOKEN = config("MP_ACCESS_TOKEN", default="")
MP_API_TIMEOUT = config("MP_API_TIMEOUT", default=10, cast=int)
PLATFORM_FEE_PERCENT = config("PLATFORM_FEE_PERCENT", default="0", cast=Decimal)
PAYMENT_WINDOW_MINUTES = config("PAYMENT_WINDOW_MINUTES", default=30, cast=int)


# Logging
SENSITIVE_KEYS = (
    "password",
    "secret",
    "token",
    "authorization",
    "cpf",
    "medical_info",
)


def scrub_sensitive(logger: t.Any, method_name: str, event_dict: dict[str, t.Any]) -> dict[str, t.Any]:
    """Redact credentials and personal documents from log events."""
    for key in list(event_dict.keys()):
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            event_dict[key] = "[REDACTED]"
        elif isinstance(event_dict[key], str) and "email" not in key.lower():
            event_dict[key] = re.sub(r"\b[\w\.-]+@[\w\.-]+\.\w+\b", "[EMAIL]", event_dict[key])
    return event_dict


FOREIGN_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    scrub_sensitive,
]

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        scrub_sensitive,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "structured": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processor": (
                structlog.dev.ConsoleRenderer() if DEBUG else structlog.processors.JSONRenderer()
            ),
            "foreign_pre_chain": FOREIGN_PRE_CHAIN,
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": config("LOG_LEVEL", default="INFO"),
    },
    "loggers": {
        "django.db.backends": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "urllib3": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
