"""ASGI entrypoint for the recycling assistant API."""

from recycling_assistant.api.app import create_app
from recycling_assistant.containers import build_container

app = create_app(build_container())
