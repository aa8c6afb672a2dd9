"""Database configuration and utilities."""

from .session import Base, SessionLocal, engine

__all__ = ["Base", "SessionLocal", "engine"]
