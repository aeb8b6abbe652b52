# models/response.py
from pydantic import BaseModel
from typing import List

from app.models.models import RankedResult


class BatchMatchResponse(BaseModel):
    total: int
    ranked_results: List[RankedResult]


class ProviderInfo(BaseModel):
    provider: str
    model: str
    endpoint: str
