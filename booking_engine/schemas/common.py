"""Shared result envelope"""

from typing import Optional
from pydantic import BaseModel


class EngineResult(BaseModel):
    """Every engine operation answers with a status and, on failure, a code"""
    status: str
    message: str = ""
    error_code: Optional[str] = None
