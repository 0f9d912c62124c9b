"""ASGI entrypoint for the Tandoor gateway API."""

from tandoor_gateway.api.app import create_app
from tandoor_gateway.containers import build_container

app = create_app(build_container())
