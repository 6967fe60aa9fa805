"""
Configuration read from the environment (and a local .env file).
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    DEBUG = _env_bool('FLASK_DEBUG', 'False')

    # Contract enforcement: "warn" logs document inconsistencies, "strict" raises
    CONTRACT_MODE = os.getenv('CONTRACT_MODE', 'warn').lower()

    # Generated document and viewer
    OPENAPI_PATH = os.getenv('OPENAPI_PATH', '/api/openapi.json')
    DOCS_PATH = os.getenv('DOCS_PATH', '/api/docs')
    API_TITLE = os.getenv('API_TITLE', 'API')
    API_VERSION = os.getenv('API_VERSION', '1.0.0')
    API_DESCRIPTION = os.getenv('API_DESCRIPTION', '')

    # Operation logging: failures and watchlisted operation ids always, the rest sampled
    OPERATION_LOG_ENABLED = _env_bool('OPERATION_LOG_ENABLED', 'true')
    OPERATION_LOG_SAMPLE_RATE = _env_float('OPERATION_LOG_SAMPLE_RATE', 0.0)
    OPERATION_LOG_WATCHLIST = os.getenv('OPERATION_LOG_WATCHLIST', '')
