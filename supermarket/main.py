# supermarket/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware
import uvicorn

from supermarket.api import register_routers
from supermarket.data.database import Base, SessionLocal, engine
from supermarket.data.seed import seed
from supermarket.domain.errors import ShopError
from supermarket.utils.settings import SEED_DATA, SESSION_MAX_AGE, SESSION_SECRET
from supermarket.utils.logging import get_logger

# IMPORT WSZYSTKICH MODELI NA POCZĄTKU (PRZED JAKIMKOLWIEK CREATE_ALL)
import supermarket.data.models  # noqa: F401

logger = get_logger(__name__)


def init_db():
    logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        logger.error(f"FAILED TO CREATE TABLES: {e}")
        raise

    if SEED_DATA:
        db = SessionLocal()
        try:
            seed(db)
        finally:
            db.close()


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": code, "message": message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Supermarket Service",
        version="1.0.0",
    )

    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET,
        max_age=SESSION_MAX_AGE,
        same_site="lax",
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    @app.exception_handler(ShopError)
    async def shop_error_handler(request: Request, exc: ShopError):
        return _error(exc.status_code, exc.code, exc.message)

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        return _error(403, "forbidden", str(exc) or "Brak dostępu")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Unhandled database error on {request.url.path}: {exc}", exc_info=True)
        return _error(503, "persistence_error", "Blad bazy danych, sprobuj ponownie")

    register_routers(app)

    return app


init_db()
app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
