from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.student_numbers.router import router as student_numbers_router
from app.core.config import settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Admissions Backend")

    # CORS: allow the admissions portal and public verification page to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(student_numbers_router)

    return app


app = create_app()
