from dataclasses import dataclass
from typing import Optional, TypeVar, Generic

T = TypeVar("T")


@dataclass
class QueryResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None
    success: bool = True
