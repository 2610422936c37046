import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kaiseki.abilities.cache import JsonFileNameCache
from kaiseki.api.deps import set_dependencies, verify_api_key
from kaiseki.api.routes.health import set_health_deps
from kaiseki.config import get_settings
from kaiseki.db.engine import create_db_engine, create_session_factory, init_db
from kaiseki.db.store import AnalysisCacheStore, SqlAbilityNameCache
from kaiseki.fflogs.factory import FFLogsFactory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    settings = get_settings()

    # Shared FFLogs client factory (one auth + HTTP pool)
    fflogs_factory = FFLogsFactory(settings)
    await fflogs_factory.start()
    logger.info("FFLogs factory started (shared auth + HTTP pool)")

    # Database (optional)
    engine = None
    if settings.db.url:
        engine = create_db_engine(settings)
        await init_db(engine)
        session_factory = create_session_factory(engine)
        cache_store = AnalysisCacheStore(session_factory)
        purged = await cache_store.purge_expired()
        logger.info(
            "Database ready: %s (%d expired cache entries purged)",
            settings.db.url.split("@")[-1], purged,
        )

        def name_cache_factory(language: str):
            return SqlAbilityNameCache(session_factory, language)

        set_dependencies(fflogs_factory, cache_store, name_cache_factory)
        set_health_deps(session_factory=session_factory)
    else:
        json_cache = JsonFileNameCache(settings.xivapi.cache_path)
        logger.info("No database configured, ability names cached in %s", json_cache.path)
        set_dependencies(fflogs_factory, None, lambda language: json_cache)
        set_health_deps(session_factory=None)

    yield

    # Shutdown
    await fflogs_factory.stop()
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Kaiseki FFLogs Analyzer",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["X-API-Key", "Content-Type"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error)

    from kaiseki.api.routes.abilities import router as abilities_router
    from kaiseki.api.routes.encounters import router as encounters_router
    from kaiseki.api.routes.health import router as health_router
    from kaiseki.api.routes.rankings import router as rankings_router
    from kaiseki.api.routes.report import router as report_router

    # Health router has no auth
    app.include_router(health_router)
    # Protected routers require API key (when configured)
    app.include_router(report_router, dependencies=[Depends(verify_api_key)])
    app.include_router(rankings_router, dependencies=[Depends(verify_api_key)])
    app.include_router(encounters_router, dependencies=[Depends(verify_api_key)])
    app.include_router(abilities_router, dependencies=[Depends(verify_api_key)])

    return app
