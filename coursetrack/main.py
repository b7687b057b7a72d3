import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coursetrack.core.config import settings
from coursetrack.api.v1.dashboard.router import router as dashboard_router
from coursetrack.api.v1.lecturers.router import router as lecturers_router
from coursetrack.api.v1.term_subjects.router import router as term_subjects_router
from coursetrack.api.v1.terms.router import router as terms_router
from coursetrack.api.v1.works.router import router as works_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="Course Term Tracking")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(terms_router)
    app.include_router(lecturers_router)
    app.include_router(works_router)
    app.include_router(term_subjects_router)
    app.include_router(dashboard_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    logger.info("Application configured (%d routes)", len(app.routes))
    return app


app = create_app()
