"""
HTTP transport for toolgate.
Exposes the FastAPI application factory; run with
``uvicorn --factory api.main:create_app``.
"""

from .main import create_app  # noqa: F401
