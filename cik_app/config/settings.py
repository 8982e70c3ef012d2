"""Django settings for the electoral commission service.

Everything deployment-specific comes from the environment.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlparse

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


DEBUG: bool = _env_bool("DEBUG")

# The security checks on SECRET_KEY are done as part of:
#   manage.py check --deploy
SECRET_KEY: str = os.getenv("SECRET_KEY", "") or "insecure-development-key-do-not-deploy"

ALLOWED_HOSTS: list[str] = _env_list("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

BEHIND_HTTPS_PROXY: bool = _env_bool("BEHIND_HTTPS_PROXY")
if BEHIND_HTTPS_PROXY:
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "electoral",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "config.urls"
CSRF_FAILURE_VIEW = "electoral.views_electoral.csrf_failure"
WSGI_APPLICATION = "config.wsgi.application"
APPEND_SLASH = False

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


if os.getenv("DATABASE_URL"):
    database_url: str = os.environ["DATABASE_URL"]
    parsed = urlparse(database_url)

    if parsed.scheme in {"postgres", "postgresql"}:
        DATABASES = {
            "default": {
                "ENGINE": "django.db.backends.postgresql",
                "NAME": parsed.path.lstrip("/"),
                "USER": parsed.username,
                "PASSWORD": parsed.password,
                "HOST": parsed.hostname,
                "PORT": parsed.port or "5432",
            }
        }
    else:
        raise ValueError(f"For DATABASE_URL, only postgres is supported, not {parsed.scheme!r}.")
elif os.getenv("DATABASE_HOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DATABASE_NAME", "cik"),
            "USER": os.getenv("DATABASE_USER", "cik"),
            "PASSWORD": os.getenv("DATABASE_PASSWORD", ""),
            "HOST": os.environ["DATABASE_HOST"],
            "PORT": os.getenv("DATABASE_PORT", "5432"),
        }
    }
else:
    # sqlite fallback: useful for development and the test suite.
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
        }
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "cik",
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE: str = os.getenv("TIME_ZONE", "UTC")
USE_I18N = False
USE_TZ = True


LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "health_endpoint": {
            "()": "config.logging_filters.HealthEndpointFilter",
        },
    },
    "formatters": {
        "default": {
            "format": "[{asctime}] {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "stderr": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "django.server": {
            "handlers": ["stderr"],
            "level": "INFO",
            "filters": ["health_endpoint"],
            "propagate": False,
        },
        "electoral": {
            "handlers": ["stderr"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["stderr"],
        "level": "WARNING",
    },
}


SENTRY_DSN: str = os.getenv("SENTRY_DSN", "").strip()
if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        environment=os.getenv("SENTRY_ENVIRONMENT", "production"),
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0")),
        send_default_pii=False,
        send_client_reports=False,
        auto_session_tracking=False,
    )


# Electoral commission.

# The founding authority: the only principal allowed to appoint or dissolve
# an electoral authority.
ELECTORAL_BOOTSTRAP_PRINCIPAL_ID: str = os.getenv("ELECTORAL_BOOTSTRAP_PRINCIPAL_ID", "").strip()

ELECTORAL_DIRECTORY_BACKEND: str = os.getenv(
    "ELECTORAL_DIRECTORY_BACKEND",
    "electoral.directory.client.HttpDirectory",
)
ELECTORAL_DIRECTORY_URL: str = os.getenv("ELECTORAL_DIRECTORY_URL", "").strip()
ELECTORAL_DIRECTORY_TOKEN: str = os.getenv("ELECTORAL_DIRECTORY_TOKEN", "").strip()
ELECTORAL_DIRECTORY_TIMEOUT_SECONDS: float = float(os.getenv("ELECTORAL_DIRECTORY_TIMEOUT_SECONDS", "5"))
ELECTORAL_DIRECTORY_FACTS_CACHE_SECONDS: int = int(os.getenv("ELECTORAL_DIRECTORY_FACTS_CACHE_SECONDS", "30"))
ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_FAILURES: int = int(
    os.getenv("ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_FAILURES", "3")
)
ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_COOLDOWN_SECONDS: int = int(
    os.getenv("ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_COOLDOWN_SECONDS", "60")
)

# Extra read-validate passes after a ballot insert loses a unique-constraint race.
ELECTORAL_CAST_CONFLICT_RETRIES: int = int(os.getenv("ELECTORAL_CAST_CONFLICT_RETRIES", "2"))
