"""Domain enums and pydantic schemas."""
