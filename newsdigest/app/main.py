"""FastAPI wrapper over the pipeline triggers and publication queries."""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request

from ..config.settings import Settings, settings
from ..news.models import Digest, RewrittenArticle, StatsSnapshot
from ..services import Services, build_services
from .auth import require_update_token
from .models import ClearRewritesRequest, HealthResponse, RecentArticlesResponse, TriggerResponse
from .tasks import TaskRunner

logger = logging.getLogger(__name__)


def create_app(
    config: Settings = settings,
    services_factory: Callable[[Settings], Services] = build_services,
) -> FastAPI:
    """
    Build the application.

    The store is opened when the app starts and closed on shutdown; every
    request uses the same Services instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services_factory(config)
        app.state.tasks = TaskRunner()
        if app.state.services.disabled:
            logger.warning("Disabled stages: %s", ", ".join(app.state.services.disabled))
        try:
            yield
        finally:
            await app.state.tasks.shutdown()
            await app.state.services.close()

    app = FastAPI(title="Local News Digest", lifespan=lifespan)
    app.state.config = config

    def get_services(request: Request) -> Services:
        return request.app.state.services

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(timestamp=datetime.now(timezone.utc))

    @app.get("/api/digest/latest", response_model=Digest)
    async def latest_digest(services: Services = Depends(get_services)):
        digest = await services.publication.latest_digest()
        if digest is None:
            raise HTTPException(status_code=404, detail="No digest available")
        return digest

    @app.get("/api/articles/recent", response_model=RecentArticlesResponse)
    async def recent_articles(
        limit: Optional[int] = Query(default=None, ge=1, le=500),
        services: Services = Depends(get_services),
    ):
        articles = await services.publication.recent_rewritten_articles(
            limit or config.recent_articles_default_limit
        )
        return RecentArticlesResponse(count=len(articles), articles=articles)

    @app.get("/api/article/rewritten/{article_id:path}", response_model=RewrittenArticle)
    async def rewritten_article(article_id: str, services: Services = Depends(get_services)):
        article = await services.publication.rewritten_article(article_id)
        if article is None:
            raise HTTPException(status_code=404, detail="Article not found")
        return article

    @app.get("/api/stats", response_model=StatsSnapshot)
    async def stats(services: Services = Depends(get_services)):
        return await services.publication.stats_snapshot()

    @app.post(
        "/api/trigger-update",
        response_model=TriggerResponse,
        dependencies=[Depends(require_update_token)],
    )
    async def trigger_update(request: Request, services: Services = Depends(get_services)):
        logger.info("Manual update triggered via API")
        handle = request.app.state.tasks.submit("pipeline-run", services.run_pipeline)
        return TriggerResponse(
            status=handle.status,
            message="Daily update triggered successfully",
            task_id=handle.task_id,
            timestamp=handle.submitted_at,
            disabled_stages=services.disabled,
        )

    @app.post(
        "/api/clear-rewrites",
        response_model=TriggerResponse,
        dependencies=[Depends(require_update_token)],
    )
    async def trigger_clear_rewrites(
        request: Request,
        body: Optional[ClearRewritesRequest] = Body(default=None),
        services: Services = Depends(get_services),
    ):
        clear_files = body.clearFiles if body else False
        logger.info("Clear rewrites triggered via API (clearFiles: %s)", clear_files)
        handle = request.app.state.tasks.submit(
            "clear-rewrites",
            lambda: services.clear_rewrites(include_backup_files=clear_files),
        )
        return TriggerResponse(
            status=handle.status,
            message="Clear rewrites triggered successfully",
            task_id=handle.task_id,
            timestamp=handle.submitted_at,
            clearFiles=clear_files,
        )

    return app


app = create_app()
