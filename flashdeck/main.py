from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from flashdeck.core.config import get_settings
from flashdeck.core.logging import setup_logging
from flashdeck.db.database import init_engine
from flashdeck.routers import admin, decks, study, system, users, webhooks


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    init_engine(settings.DATABASE_URL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="API backend flashcards (decks, cartes, sessions d'étude, statistiques)",
    )

    # Middleware CORS
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],  # fallback si mal configuré
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(system.router)
    app.include_router(users.router)
    app.include_router(decks.router)
    app.include_router(study.router)
    app.include_router(webhooks.router)
    app.include_router(admin.router)

    # Redirect root → docs
    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    return app
