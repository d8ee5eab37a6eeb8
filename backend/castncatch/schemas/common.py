from __future__ import annotations
from pydantic import BaseModel

class ActionResult(BaseModel):
    result: str

class ErrorBody(BaseModel):
    error: str
    message: str
