"""HTTP surface -- FastAPI app, routes and error mapping."""

from ratedesk.api.app import create_app

__all__ = ["create_app"]
