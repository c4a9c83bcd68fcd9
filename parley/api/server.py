"""ASGI entrypoint for Parley; delegates to create_app()."""

from parley.api.app import create_app

app = create_app()
