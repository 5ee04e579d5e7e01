import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration shared across all environments."""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Commerce platform
    BIGCOMMERCE_STORE_HASH   = os.environ.get('BIGCOMMERCE_STORE_HASH', '')
    BIGCOMMERCE_ACCESS_TOKEN = os.environ.get('BIGCOMMERCE_ACCESS_TOKEN', '')
    BIGCOMMERCE_CHANNEL_ID   = int(os.environ.get('BIGCOMMERCE_CHANNEL_ID', '1'))
    BIGCOMMERCE_API_URL      = os.environ.get('BIGCOMMERCE_API_URL', 'https://api.bigcommerce.com')
    # Defaults to https://store-<hash>.mybigcommerce.com/graphql when empty
    BIGCOMMERCE_GRAPHQL_URL  = os.environ.get('BIGCOMMERCE_GRAPHQL_URL', '')

    # Storefront token lifetime and how early it is renewed (seconds)
    STOREFRONT_TOKEN_TTL    = int(os.environ.get('STOREFRONT_TOKEN_TTL', '86400'))
    STOREFRONT_TOKEN_LEEWAY = int(os.environ.get('STOREFRONT_TOKEN_LEEWAY', '300'))

    # Every outbound platform call is bounded by this many seconds
    PLATFORM_TIMEOUT = float(os.environ.get('PLATFORM_TIMEOUT', '10'))
    PROMOTION_LOOKUP_WORKERS = int(os.environ.get('PROMOTION_LOOKUP_WORKERS', '4'))

    LOG_LEVEL   = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_TO_FILE = True


class DevelopmentConfig(Config):
    """Development environment configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production environment configuration."""
    DEBUG = False

    # Ensure SECRET_KEY is set
    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Session Cookie Security (the cart id lives in the session)
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing environment configuration."""
    TESTING = True
    SECRET_KEY = 'testing'
    BIGCOMMERCE_STORE_HASH   = 'teststore'
    BIGCOMMERCE_ACCESS_TOKEN = 'test-token'
    PLATFORM_TIMEOUT = 1.0
    PROMOTION_LOOKUP_WORKERS = 2
    LOG_TO_FILE = False
    SESSION_COOKIE_SECURE = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
