from .config import settings, get_settings
from .database import engine, SessionLocal, get_db, Base, commit_or_conflict, flush_or_conflict

__all__ = ["settings", "get_settings", "engine", "SessionLocal", "get_db", "Base", "commit_or_conflict", "flush_or_conflict"]
