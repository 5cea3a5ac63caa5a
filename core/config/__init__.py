#!/usr/bin/env python3
"""Configuration for the confidential fundraising client

Configuration hierarchy:
- fundraising_config: ledger, relayer and client policy settings
- logging_config: logging configuration
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .fundraising_config import (
    FundraisingConfig,
    LedgerConfig,
    RelayerConfig,
    ZERO_ADDRESS,
)

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = FundraisingConfig.from_env()

def get_settings() -> FundraisingConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> FundraisingConfig:
    """Reload settings from environment"""
    global settings
    settings = FundraisingConfig.from_env()
    return settings

__all__ = [
    'FundraisingConfig',
    'LedgerConfig',
    'RelayerConfig',
    'LoggingConfig',
    'ZERO_ADDRESS',
    'get_settings',
    'reload_settings',
    'settings',
]
