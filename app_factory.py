# Imports from standard library or third-party packages
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Imports from this project
from config import CORS_ORIGINS, LOG_LEVEL, is_production
from database import create_indexes, get_mongo_db, utcnow
from exceptions import DomainError, ServerError, ValidationError
from routers import (
    auth,
    users,
    collections,
    reports,
)


def configure_logging():
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(message)s')


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = {"success": False, "message": message}
    content.update({key: value for key, value in extra.items() if value is not None})
    return JSONResponse(status_code=status_code, content=content)


def cors_headers(request: Request) -> dict:
    """En-têtes CORS pour les réponses produites hors de CORSMiddleware (erreurs 500)."""
    origin = request.headers.get("origin")
    if not origin or ("*" not in CORS_ORIGINS and origin not in CORS_ORIGINS):
        return {}
    return {"Access-Control-Allow-Origin": origin, "Access-Control-Allow-Credentials": "true", "Vary": "Origin"}


def register_exception_handlers(app: FastAPI):
    """Toutes les erreurs sortent avec l'enveloppe {success: false, message, ...}."""

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        fields = exc.fields if isinstance(exc, ValidationError) and exc.fields else None
        return error_response(exc.status_code, exc.message, fields=fields)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Erreur"
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = "Route non trouvée"
        response = error_response(exc.status_code, message)
        if getattr(exc, "headers", None):
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in error["loc"] if part != "body") for error in exc.errors()]
        return error_response(400, "Données invalides: " + ", ".join(fields), fields=fields)

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception):
        logging.error(f"Erreur non gérée sur {request.method} {request.url.path}: {exc}", exc_info=exc)
        response = error_response(
            ServerError.status_code, ServerError.default_message, error=None if is_production() else str(exc)
        )
        # Ce gestionnaire s'exécute en dehors de CORSMiddleware
        response.headers.update(cors_headers(request))
        return response


def create_app():
    """Crée et configure l'instance de l'application FastAPI."""
    configure_logging()

    app = FastAPI(
        title="Waste Collection API",
        description="API de gestion des collectes de déchets et des signalements",
        version="1.0.0"
    )

    # Événements de démarrage
    @app.on_event("startup")
    def on_startup():
        db = app.dependency_overrides.get(get_mongo_db, get_mongo_db)()
        create_indexes(db)
        logging.info("Index MongoDB vérifiés")

    # Configuration CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Journal des requêtes en développement
    if not is_production():
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.perf_counter()
            response = await call_next(request)
            elapsed = (time.perf_counter() - start) * 1000
            logging.info(f"{request.method} {request.url.path} {response.status_code} - {elapsed:.1f} ms")
            return response

    register_exception_handlers(app)

    # Inclusion des routeurs
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(collections.router, prefix="/api/collections", tags=["Collections"])
    app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])

    @app.get("/api/health", tags=["Root"])
    def health():
        return {"success": True, "message": "Le serveur fonctionne", "timestamp": utcnow().isoformat()}

    return app
