from typing import Generic, Optional, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    status_code: int
    data: Optional[T] = None
    detail: str
    count: Optional[int] = None
