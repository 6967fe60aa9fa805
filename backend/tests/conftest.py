"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (app, client, api)
"""

import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from flasknext import App` and `from app import create_app` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from flask import Flask


@pytest.fixture
def app():
    """Create the example Todo application."""
    from app import create_app

    app = create_app()
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def api():
    """A bare flasknext App on a fresh Flask app, WARN mode."""
    from flasknext import App

    flask_app = Flask(__name__)
    flask_app.config['TESTING'] = True
    return App(flask_app, mode="warn")
