"""
Response envelopes shared by all endpoints.
"""
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Successful response carrying a payload."""
    data: T


class MessageResponse(BaseModel):
    """Successful response carrying only a message."""
    message: str
