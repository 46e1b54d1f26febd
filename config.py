"""
config.py
-----------------
Flask configuration for the attendance service. Values come from the
environment so the same build runs locally on SQLite and on PostgreSQL
when DATABASE_URL is set.
"""

import os
from urllib.parse import urlparse

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def database_url():
    db_url = os.environ.get('DATABASE_URL')
    if not db_url:
        return 'sqlite:///' + os.path.join(BASE_DIR, 'attendance.db')

    # SQLAlchemy only understands postgresql://
    if urlparse(db_url).scheme == 'postgres':
        db_url = db_url.replace('postgres://', 'postgresql://', 1)
    return db_url


def engine_options(db_url):
    if db_url.startswith('sqlite'):
        return {}
    return {
        'pool_size': 10,
        'max_overflow': 20,
        'pool_recycle': 300,
        'pool_pre_ping': True,
        'pool_timeout': 30,
    }


class Config:
    SQLALCHEMY_DATABASE_URI = database_url()
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
    UPLOAD_URL_PREFIX = '/uploads'
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    ADMIN_USER = os.environ.get('ADMIN_USER')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')
    ADMIN_PASSWORD_HASH = os.environ.get('ADMIN_PASSWORD_HASH')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    SEED_DEMO_DATA = os.environ.get('SEED_DEMO_DATA', '').lower() in ('1', 'true', 'yes')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    ADMIN_USER = 'admin'
    ADMIN_PASSWORD = 'admin-secret'
    ADMIN_PASSWORD_HASH = None
    SEED_DEMO_DATA = False
