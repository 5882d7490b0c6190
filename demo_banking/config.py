"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
Secrets and salts are read here once and injected into the components that need them.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BankingConfig(BaseSettings):
    """Demo banking application configuration"""

    # Database configuration
    database_url: str = "sqlite:///demo_bank.db"  # "memory://" for in-memory storage

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    ssn_salt: str = "change-me-in-production"
    password_min_length: int = 8

    # Session policy
    session_lifetime_days: int = 7
    session_expiry_buffer_seconds: int = 300  # 5 minutes
    max_sessions_per_user: int = 5
    session_cookie_name: str = "session"

    # Business rules configuration
    min_transaction_amount: str = "0.01"
    max_transaction_amount: str = "1000000.00"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    class Config:
        env_prefix = "DEMO_BANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankingConfig()


def get_config() -> BankingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankingConfig:
    """Reload configuration from environment"""
    global config
    config = BankingConfig()
    return config
