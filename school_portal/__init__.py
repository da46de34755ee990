# school_portal/__init__.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from school_portal.core.config import settings
from school_portal.core.database import close_db, init_db
from school_portal.core.errors import register_exception_handlers
from school_portal.core.logging import logger
from school_portal.routes import academic, auth, coursework, exams, messaging, parent, students, timetable


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="API for school administration, timetables, coursework and messaging",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
    )

    # CORS middleware; cookies carry the credential, so credentials are allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/api/auth")
    app.include_router(academic.router, prefix="/api/academic")
    app.include_router(timetable.router, prefix="/api/timetable")
    app.include_router(students.router, prefix="/api")
    app.include_router(parent.router, prefix="/api")
    app.include_router(coursework.router, prefix="/api")
    app.include_router(exams.router, prefix="/api")
    app.include_router(messaging.router, prefix="/api")

    @app.on_event("startup")
    async def startup_event():
        await init_db()
        logger.info("Application startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        await close_db()
        logger.info("Application shutdown completed")

    return app
