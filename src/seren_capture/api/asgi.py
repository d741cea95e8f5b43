"""ASGI entrypoint for the capture API."""

from seren_capture.api.app import create_app
from seren_capture.containers import build_container

app = create_app(build_container())
