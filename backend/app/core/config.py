"""
Settings access point

Most modules import the ready-made instance:

    from app.core.config import settings
"""
from app.core.settings import Settings, get_settings

settings: Settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
