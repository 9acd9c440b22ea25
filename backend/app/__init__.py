"""Boarding-house backoffice backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

if TYPE_CHECKING:
    from fastapi import FastAPI


def get_app() -> "FastAPI":
    """Return the FastAPI application, importing it on first use.

    Alembic and the billing CLI import this package without needing the web
    application, so the routers are only loaded when ``app`` is requested.
    """

    from .main import app as fastapi_app

    return fastapi_app


def __getattr__(name: str) -> Any:
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["app", "get_app", "__version__"]
