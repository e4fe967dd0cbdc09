"""
Type-safe Quart application class for the custom login service.

Provides typed attributes for the app-level infrastructure instead of
setattr()/getattr() on a plain Quart instance.
"""

from __future__ import annotations

from typing import Any

from dishka import AsyncContainer
from quart import Quart
from sqlalchemy.ext.asyncio import AsyncEngine


class LoginServiceApp(Quart):
    """Quart application with guaranteed service infrastructure.

    GUARANTEED INFRASTRUCTURE (set during startup):
        database_engine: SQLAlchemy async engine backing the identity store
        container: Dishka async container for dependency injection
        extensions: Standard Quart extensions dictionary (metrics live here)
    """

    database_engine: AsyncEngine
    """SQLAlchemy async engine used by the identity store and health checks."""

    container: AsyncContainer
    """Dishka async container for protocol-based dependency resolution."""

    extensions: dict[str, Any]
    """Standard Quart extensions dictionary."""

    def __init__(self, import_name: str, *args: Any, **kwargs: Any) -> None:
        """Initialize the app.

        database_engine and container are NOT initialized here; they MUST be
        set by startup_setup.initialize_services before serving.
        """
        super().__init__(import_name, *args, **kwargs)
        self.extensions = {}
