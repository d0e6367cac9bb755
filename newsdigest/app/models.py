"""Pydantic request/response models for the web API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..news.models import RewrittenArticle


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


class RecentArticlesResponse(BaseModel):
    """Publishable rewritten articles, newest first."""

    count: int
    articles: list[RewrittenArticle] = []


class ClearRewritesRequest(BaseModel):
    """Request body for /api/clear-rewrites."""

    clearFiles: bool = False


class TriggerResponse(BaseModel):
    """Acknowledgement of a background task submission."""

    status: str
    message: str
    task_id: str
    timestamp: datetime
    clearFiles: Optional[bool] = None
    disabled_stages: list[str] = []
