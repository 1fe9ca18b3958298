"""Pydantic schemas for the research progress stream."""

from typing import Literal

from pydantic import BaseModel


class ResearchProgressEvent(BaseModel):
    step: str
    progress: int
    timestamp: str
    sources: int = 0
    status: Literal["processing", "completed", "error"]
