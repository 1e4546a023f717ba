"""ASGI entrypoint for the buffet tracker API."""

from buffet_tracker.api.app import create_app
from buffet_tracker.containers import build_container

app = create_app(build_container())
