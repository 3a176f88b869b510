"""Environment configuration module.

This module MUST be imported before any other project modules that depend on environment variables.
It loads the .env file and sets up the environment configuration that will be used throughout the project,
both when running the FastAPI app and when running standalone scripts.

Usage:
    from teamcal.config.environment import IS_PRODUCTION_ENVIRONMENT
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables - this must happen before any other imports
load_dotenv()

env_setting = os.environ.get('ENVIRONMENT', '').lower()
IS_PRODUCTION_ENVIRONMENT = env_setting == 'production'

if env_setting not in ['development', 'production', 'test']:
    logging.warning(
        f"Environment setting '{env_setting}' is invalid or not specified. "
        "Expected 'development', 'production' or 'test'. Defaulting to development environment."
    )


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable ('1', 'true', 'yes', 'on')."""
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


__all__ = ['IS_PRODUCTION_ENVIRONMENT', 'env_flag']
