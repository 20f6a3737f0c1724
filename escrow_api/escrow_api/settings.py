import os
from datetime import timedelta
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
    PLATFORM_FEE_PERCENT=(int, 5),
    MAX_PLATFORM_FEE_PERCENT=(int, 30),
    CUSTODY_API_TIMEOUT=(int, 15),
)
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

SECRET_KEY = env('SECRET_KEY', default='django-insecure-escrow-dev-key')
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1', 'testserver'])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'django_filters',
    'drf_yasg',
    'auditlog',

    'accounts',
    'settlement',
    'escrow',
    'milestones',
    'disputes',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'auditlog.middleware.AuditlogMiddleware',
    'escrow_api.middleware.UserActivityLoggingMiddleWare',
]

ROOT_URLCONF = 'escrow_api.urls'

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

DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

AUTH_USER_MODEL = 'accounts.CustomUser'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
    'EXCEPTION_HANDLER': 'escrow_api.exceptions.escrow_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=30),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=1),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {'type': 'apiKey', 'name': 'Authorization', 'in': 'header'},
    },
}

# Escrow platform
PLATFORM_FEE_PERCENT = env('PLATFORM_FEE_PERCENT')
MAX_PLATFORM_FEE_PERCENT = env('MAX_PLATFORM_FEE_PERCENT')
PLATFORM_WALLET = env('PLATFORM_WALLET', default='platform:treasury')
SETTLEMENT_TOKEN = env('SETTLEMENT_TOKEN', default='')

# Settlement
SETTLEMENT_PROVIDER = env('SETTLEMENT_PROVIDER', default='ledger')
ESCROW_CUSTODY_ACCOUNT = env('ESCROW_CUSTODY_ACCOUNT', default='escrow:custody')
CUSTODY_API_URL = env('CUSTODY_API_URL', default='http://localhost:8080/v1')
CUSTODY_API_KEY = env('CUSTODY_API_KEY', default='')
CUSTODY_API_TIMEOUT = env('CUSTODY_API_TIMEOUT')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'audit': {
            'handlers': ['console'],
            'level': env('AUDIT_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
        'escrow': {'handlers': ['console'], 'level': 'INFO'},
        'milestones': {'handlers': ['console'], 'level': 'INFO'},
        'settlement': {'handlers': ['console'], 'level': 'INFO'},
    },
}
