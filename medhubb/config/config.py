"""
Application Configuration

FLOW OVERVIEW
- Config.__init__
  • Reads FLASK_ENV to select which .env file to load (dev/prod). Testing bypasses file load.
- Properties expose configuration values, defaulting to development-safe values.
- ADMIN_MASTER_PASSWORD has no default: without it admin login answers 500
  and every admin bearer token is rejected.
"""

import os
from dotenv import load_dotenv


class Config:
    """Base configuration class"""

    def __init__(self):
        env_file = os.getenv('FLASK_ENV', 'development')
        if env_file == 'testing':
            # For testing, don't load config files, use environment variables directly
            pass
        elif env_file == 'production':
            load_dotenv('config.prod.env')
        else:
            load_dotenv('config.env')

    @property
    def SECRET_KEY(self):
        """Application secret key (signs the Flask session cookie)"""
        return os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Database connection URI"""
        return os.getenv('DATABASE_URL', 'sqlite:///medhubb.db')

    @property
    def SQLALCHEMY_TRACK_MODIFICATIONS(self):
        return False

    @property
    def JWT_SECRET_KEY(self):
        """Secret used to sign user access tokens"""
        return os.getenv('JWT_SECRET_KEY', 'jwt-secret-key-change-in-production')

    @property
    def JWT_ACCESS_TOKEN_EXPIRES(self):
        """Access token lifetime in seconds"""
        return int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', 3600))

    @property
    def ADMIN_MASTER_PASSWORD(self):
        """Admin password, also used verbatim as the admin bearer token"""
        return os.getenv('ADMIN_MASTER_PASSWORD')

    @property
    def APP_URL(self):
        """Public base URL used to build invite and reset links"""
        return os.getenv('APP_URL', 'http://localhost:3000').rstrip('/')

    @property
    def INVITE_EXPIRY_DAYS(self):
        return int(os.getenv('INVITE_EXPIRY_DAYS', 7))

    @property
    def PASSWORD_RESET_TOKEN_EXPIRES(self):
        """Password reset token lifetime in seconds"""
        return int(os.getenv('PASSWORD_RESET_TOKEN_EXPIRES', 3600))

    @property
    def BCRYPT_LOG_ROUNDS(self):
        return int(os.getenv('BCRYPT_LOG_ROUNDS', 12))

    @property
    def RATELIMIT_ENABLED(self):
        return os.getenv('RATELIMIT_ENABLED', 'True').lower() == 'true'

    @property
    def MAIL_SERVER(self):
        return os.getenv('MAIL_SERVER', 'smtp.gmail.com')

    @property
    def MAIL_PORT(self):
        return int(os.getenv('MAIL_PORT', 587))

    @property
    def MAIL_USE_TLS(self):
        return os.getenv('MAIL_USE_TLS', 'True').lower() == 'true'

    @property
    def MAIL_USE_SSL(self):
        return os.getenv('MAIL_USE_SSL', 'False').lower() == 'true'

    @property
    def MAIL_USERNAME(self):
        return os.getenv('MAIL_USERNAME')

    @property
    def MAIL_PASSWORD(self):
        return os.getenv('MAIL_PASSWORD')

    @property
    def MAIL_DEFAULT_SENDER(self):
        """Default sender email address"""
        return os.getenv('MAIL_DEFAULT_SENDER', 'MedHubb Team <noreply@medhubb.app>')

    @property
    def SESSION_COOKIE_SECURE(self):
        return os.getenv('FLASK_ENV') == 'production'

    @property
    def SESSION_COOKIE_HTTPONLY(self):
        return True

    @property
    def SESSION_COOKIE_SAMESITE(self):
        return 'Lax'

    @property
    def PERMANENT_SESSION_LIFETIME(self):
        """Session lifetime in seconds"""
        return 3600
