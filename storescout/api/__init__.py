"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from storescout.api import app

    uvicorn storescout.api:app --reload
"""

from storescout.api.app import app

__all__ = ["app"]
