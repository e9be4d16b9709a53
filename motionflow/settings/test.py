from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

# Tests configure credentials explicitly
BKASH_APP_KEY = ''
BKASH_APP_SECRET = ''
BKASH_USERNAME = ''
BKASH_PASSWORD = ''
PIPRAPAY_API_KEY = ''
PIPRAPAY_BASE_URL = ''
PIPRAPAY_WEBHOOK_VERIFY_KEY = ''
GREENWEB_SMS_TOKEN = ''
