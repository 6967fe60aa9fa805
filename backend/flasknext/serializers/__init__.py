"""
Response serializers and envelope helpers.
"""

from .response import Envelope, success_envelope, error_envelope, normalize_result

__all__ = ['Envelope', 'success_envelope', 'error_envelope', 'normalize_result']
