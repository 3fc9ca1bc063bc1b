"""ASGI entry point: ``uvicorn catalog.asgi:app``."""

from catalog.main import create_app

app = create_app()
