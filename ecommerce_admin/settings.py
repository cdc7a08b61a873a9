"""
Django settings for the e-commerce admin API.

Every secret and provider endpoint is read from the environment so the same
settings module serves local development, tests and production. Provider
configuration is grouped per integration:
- SIMPLE_JWT: identity provider session tokens (bearer credentials)
- IDENTITY_WEBHOOK_SECRET: Svix secret for identity provider user events
- MOMO / VNPAY / STRIPE: payment gateways
- PUSHER: push-notification channel
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-dev-only-change-me')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')
    if host.strip()
]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'django_filters',
    'authentication',
    'products',
    'orders',
    'payments',
    'notifications',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'authentication.middleware.SecurityHeadersMiddleware',
    'authentication.middleware.AuditLoggingMiddleware',
]

ROOT_URLCONF = 'ecommerce_admin.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'ecommerce_admin.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DB_USER', ''),
        'PASSWORD': os.environ.get('DB_PASSWORD', ''),
        'HOST': os.environ.get('DB_HOST', ''),
        'PORT': os.environ.get('DB_PORT', ''),
    }
}

CACHES = {
    'default': {
        'BACKEND': os.environ.get('CACHE_BACKEND', 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.environ.get('CACHE_LOCATION', 'ecommerce-admin'),
    }
}

AUTH_USER_MODEL = 'authentication.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ---------------------------------------------------------------------------
# REST framework
# ---------------------------------------------------------------------------

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'authentication.identity.ExternalIdentityAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'EXCEPTION_HANDLER': 'ecommerce_admin.exception_handler.api_exception_handler',
}

# Identity provider session tokens. The provider signs the token; we only
# verify it. RS256 deployments set IDENTITY_JWT_VERIFYING_KEY to the PEM key.
SIMPLE_JWT = {
    'ALGORITHM': os.environ.get('IDENTITY_JWT_ALGORITHM', 'HS256'),
    'SIGNING_KEY': os.environ.get('IDENTITY_JWT_SIGNING_KEY', SECRET_KEY),
    'VERIFYING_KEY': os.environ.get('IDENTITY_JWT_VERIFYING_KEY') or None,
    'ISSUER': os.environ.get('IDENTITY_JWT_ISSUER') or None,
    'LEEWAY': 5,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'USER_ID_FIELD': 'external_id',
    'USER_ID_CLAIM': 'sub',
    'AUTH_TOKEN_CLASSES': ('rest_framework_simplejwt.tokens.UntypedToken',),
    'TOKEN_TYPE_CLAIM': None,
    'JTI_CLAIM': None,
}

IDENTITY_WEBHOOK_SECRET = os.environ.get('IDENTITY_WEBHOOK_SECRET', '')

# ---------------------------------------------------------------------------
# Payment gateways and push notifications
# ---------------------------------------------------------------------------

FRONTEND_STORE_URL = os.environ.get('FRONTEND_STORE_URL', 'http://localhost:3001')
APP_URL = os.environ.get('APP_URL', 'http://localhost:8000')

MOMO = {
    'PARTNER_CODE': os.environ.get('MOMO_PARTNER_CODE', ''),
    'ACCESS_KEY': os.environ.get('MOMO_ACCESS_KEY', ''),
    'SECRET_KEY': os.environ.get('MOMO_SECRET_KEY', ''),
    'ENDPOINT': os.environ.get('MOMO_ENDPOINT', 'https://test-payment.momo.vn/v2/gateway/api/create'),
    'REQUEST_TYPE': os.environ.get('MOMO_REQUEST_TYPE', 'payWithMethod'),
    'TIMEOUT': int(os.environ.get('MOMO_TIMEOUT', '30')),
}

VNPAY = {
    'TMN_CODE': os.environ.get('VNPAY_TMN_CODE', '').strip(),
    'SECURE_SECRET': os.environ.get('VNPAY_SECURE_SECRET', '').strip(),
    'HOST': os.environ.get('VNPAY_HOST', 'https://sandbox.vnpayment.vn'),
}

STRIPE = {
    'WEBHOOK_SECRET': os.environ.get('STRIPE_WEBHOOK_SECRET', ''),
}

PUSHER = {
    'APP_ID': os.environ.get('PUSHER_APP_ID', ''),
    'KEY': os.environ.get('PUSHER_KEY', ''),
    'SECRET': os.environ.get('PUSHER_SECRET', ''),
    'CLUSTER': os.environ.get('PUSHER_CLUSTER', ''),
}

# django-ratelimit
RATELIMIT_ENABLE = env_bool('RATELIMIT_ENABLE', True)
RATELIMIT_USE_CACHE = 'default'
SILENCED_SYSTEM_CHECKS = ['django_ratelimit.E003', 'django_ratelimit.W001']

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {'handlers': ['console'], 'level': 'WARNING', 'propagate': False},
        'authentication': {'level': LOG_LEVEL},
        'orders': {'level': LOG_LEVEL},
        'payments': {'level': LOG_LEVEL},
        'notifications': {'level': LOG_LEVEL},
    },
}
