"""
Configuration Management Module

Centralized configuration management following the 12-factor app methodology.
All configuration is loaded from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load environment variables from config.env
load_dotenv('word_duel/config/config.env')


class Config:
    """Base configuration class with all settings."""

    # Flask Settings
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    TESTING = False

    # Server Settings
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 5000))

    # Database Settings (in-memory store is used when MONGO_URI is unset)
    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB = os.getenv('MONGO_DB', 'word_duel')
    STORE_RETRY_ATTEMPTS = int(os.getenv('STORE_RETRY_ATTEMPTS', 3))
    STORE_RETRY_BASE_DELAY = float(os.getenv('STORE_RETRY_BASE_DELAY', 0.1))

    # Match Settings
    QUEUE_TIMEOUT_SECONDS = int(os.getenv('QUEUE_TIMEOUT_SECONDS', 60))
    MULTIPLAYER_TIME_LIMIT_SECONDS = int(os.getenv('MULTIPLAYER_TIME_LIMIT_SECONDS', 600))
    DISCONNECT_TIMEOUT_SECONDS = int(os.getenv('DISCONNECT_TIMEOUT_SECONDS', 300))
    DISCONNECT_GRACE_SECONDS = int(os.getenv('DISCONNECT_GRACE_SECONDS', 30))
    MIN_TURN_SKIP_SECONDS = int(os.getenv('MIN_TURN_SKIP_SECONDS', 5))
    MATCH_RETENTION_SECONDS = int(os.getenv('MATCH_RETENTION_SECONDS', 3600))

    # Background Workers
    SWEEP_INTERVAL_SECONDS = int(os.getenv('SWEEP_INTERVAL_SECONDS', 15))
    AI_SCHEDULER_ENABLED = os.getenv('AI_SCHEDULER_ENABLED', 'True').lower() == 'true'

    # Logging Settings
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    MONGO_URI = None
    AI_SCHEDULER_ENABLED = False
    STORE_RETRY_BASE_DELAY = 0.0


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
