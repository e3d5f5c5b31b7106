"""
Base schemas used across the application.
"""
from pydantic import BaseModel

class MessageResponse(BaseModel):
    """Body returned by the MileApp and Shoptree callback endpoints."""
    message: str
