"""Pydantic value models shared by the core, the repository, and callers."""
