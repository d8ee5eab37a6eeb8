from __future__ import annotations
from pydantic import BaseModel

class JobEnqueued(BaseModel):
    job: str
    job_id: str
