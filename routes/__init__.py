# Routes package __init__.py - re-exports routers for main.py convenience
from .search import router as search_router
from .devotionals import router as devotionals_router
from .widget import router as widget_router
from .saved import router as saved_router
from .logins import router as logins_router

__all__ = ['search_router', 'devotionals_router', 'widget_router', 'saved_router', 'logins_router']
