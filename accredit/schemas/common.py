"""
Common schemas used across the application.
"""
from typing import Generic, TypeVar, Optional
from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated list response."""
    page: int
    perPage: int
    totalItems: int
    totalPages: int
    items: list[T]


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class HealthResponse(BaseModel):
    code: int = 200
    message: str = "API is healthy."


class ErrorResponse(BaseModel):
    """Body returned for workflow errors."""
    detail: str
    code: str
    current_state: Optional[str] = None
