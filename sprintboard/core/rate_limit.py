"""
Shared slowapi limiter.
Routes opt in with @limiter.limit(...); the middleware in main reads it from app.state.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
