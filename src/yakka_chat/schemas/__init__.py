"""Pydantic schemas for the Yakka chat API."""
