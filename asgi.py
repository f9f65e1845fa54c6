"""
asgi.py -- ASGI entry point for Quill.

api/main.py assembles the app (middleware, routers, exception handlers);
this module only exposes it under the name servers expect.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app

__all__ = ["app"]
