
from typing import Any, Dict, List, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# Paginated response wrapper — used by all list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses: body of every BookingServiceError
class ErrorResponse(BaseModel):
    error: str
    message: str
    category: str
    details: Dict[str, Any] = {}
