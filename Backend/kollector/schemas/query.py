from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class NaturalLanguageQuery(BaseModel):
    question: str

class QueryResponse(BaseModel):
    question: str
    query: Optional[str] = None
    results: List[Dict[str, Any]] = []
    result_count: int = 0
    answer: Optional[str] = None
    success: bool = False
    error: Optional[str] = None
