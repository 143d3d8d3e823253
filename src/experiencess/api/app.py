"""ASGI entrypoint: ``uvicorn experiencess.api.app:app``."""

from experiencess.api.factory import create_app

app = create_app()
