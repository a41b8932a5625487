import os
from dotenv import load_dotenv

load_dotenv()


def _backend_url():
    # NEXT_PUBLIC_BACKEND_URL is the name the deployed frontends already use.
    url = os.getenv('NEXT_PUBLIC_BACKEND_URL') or os.getenv('BACKEND_URL') or 'http://localhost:4000'
    return url.strip().rstrip('/')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me-in-production')

    BACKEND_URL = _backend_url()
    BACKEND_TIMEOUT = float(os.getenv('BACKEND_TIMEOUT', '15'))

    LEAVE_BADGE_POLL_SECONDS = int(os.getenv('LEAVE_BADGE_POLL_SECONDS', '60'))
    LEAVE_BADGE_MAX = int(os.getenv('LEAVE_BADGE_MAX', '99'))
    LOGIN_REDIRECT_DELAY_MS = int(os.getenv('LOGIN_REDIRECT_DELAY_MS', '900'))

    # REMEMBER_COOKIE_* belongs to Flask-Login.
    TOKEN_COOKIE_NAME = os.getenv('TOKEN_COOKIE_NAME', 'remember_tokens')
    TOKEN_COOKIE_DAYS = int(os.getenv('TOKEN_COOKIE_DAYS', '30'))

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    WTF_CSRF_ENABLED = False
    BACKEND_URL = 'http://backend.test'
    LEAVE_BADGE_POLL_SECONDS = 1
