"""
Shared service libraries for the custom login service.

Contains the structured logging setup, the typed Quart application class,
the Prometheus metrics middleware and the error handling framework.
"""

from services.libs.login_service_libs.quart_app import LoginServiceApp

__all__ = ["LoginServiceApp"]
