"""Entry point for the FastAPI-powered manga discovery service."""

from __future__ import annotations

import logging
import re
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import Database
from .models import CachedManga, FavoriteCreate, HistoryUpdate
from .services.bootstrap import BootstrapService
from .services.manga_store import MangaStore
from .services.mangadex import CatalogRequestError, MangaDexClient
from .services.user_library import UserLibrary

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
DEFAULT_POPULAR_LIMIT = 50
UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    mangadex_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.mangadex_api_url),
            timeout=httpx.Timeout(
                settings.http_timeout_seconds,
                connect=settings.http_connect_timeout_seconds,
            ),
            headers={"User-Agent": f"{settings.app_name} (mangashelf)"},
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    mangadex = MangaDexClient(settings, mangadex_http_client)
    store = MangaStore(database.session_factory)

    fastapi_app.state.database = database
    fastapi_app.state.mangadex = mangadex
    fastapi_app.state.manga_store = store
    fastapi_app.state.bootstrap = BootstrapService(settings, mangadex, store)
    fastapi_app.state.user_library = UserLibrary(database.session_factory)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Manga discovery backed by the MangaDex catalog",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def _state_attribute(fastapi_app: FastAPI, name: str, expected: type) -> Any:
    value = getattr(fastapi_app.state, name, None)
    if not isinstance(value, expected):
        raise RuntimeError(f"{expected.__name__} not initialised")
    return value


def get_mangadex(fastapi_app: FastAPI) -> MangaDexClient:
    return _state_attribute(fastapi_app, "mangadex", MangaDexClient)


def get_manga_store(fastapi_app: FastAPI) -> MangaStore:
    return _state_attribute(fastapi_app, "manga_store", MangaStore)


def get_bootstrap_service(fastapi_app: FastAPI) -> BootstrapService:
    return _state_attribute(fastapi_app, "bootstrap", BootstrapService)


def get_user_library(fastapi_app: FastAPI) -> UserLibrary:
    return _state_attribute(fastapi_app, "user_library", UserLibrary)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _catalog_error_response(
    exc: CatalogRequestError, *, bad_request: str, not_found: str
) -> JSONResponse:
    """Map an upstream failure to a generic client-facing error."""

    status = exc.status_code
    if status is None or status < 400:
        return _error(500, "Internal server error")
    if status == 400:
        return _error(400, bad_request)
    if exc.not_found:
        return _error(404, not_found)
    return _error(status, "Failed to fetch manga from external API")


def _parse_limit(raw: str | None, *, default: int, maximum: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    if value <= 0:
        value = default
    return min(value, maximum)


async def _read_json_body(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        # Covers malformed JSON and bodies that are not valid UTF-8.
        payload = {}
    if not isinstance(payload, dict):
        return {}
    return payload


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/manga/search")
    async def search_manga(title: str | None = None) -> JSONResponse:
        query = (title or "").strip()
        if not query:
            return _error(400, "Title parameter is required and cannot be empty")
        if len(query) > MAX_TITLE_LENGTH:
            return _error(
                400, f"Title parameter is too long (max {MAX_TITLE_LENGTH} characters)"
            )

        mangadex = get_mangadex(fastapi_app)
        try:
            payload = await mangadex.search(query)
        except CatalogRequestError as exc:
            logger.warning("Error fetching manga for %r: %s", query, exc)
            return _catalog_error_response(
                exc,
                bad_request="Invalid search parameters",
                not_found="No manga found matching the title",
            )
        return JSONResponse(payload)

    @fastapi_app.get("/api/manga/popular")
    async def popular_manga(limit: str | None = None) -> JSONResponse:
        store = get_manga_store(fastapi_app)
        resolved_limit = _parse_limit(
            limit, default=DEFAULT_POPULAR_LIMIT, maximum=settings.popular_list_max
        )
        try:
            entries = await store.list_recent(resolved_limit)
        except SQLAlchemyError:
            logger.exception("Error fetching popular manga")
            return _error(500, "Failed to fetch popular manga")
        return JSONResponse({"data": [entry.to_catalog_payload() for entry in entries]})

    @fastapi_app.get("/api/manga/discover")
    async def discover_manga(
        limit: str | None = None,
        content_type: str | None = Query(default=None, alias="type"),
    ) -> JSONResponse:
        mangadex = get_mangadex(fastapi_app)
        resolved_limit = _parse_limit(
            limit,
            default=settings.bootstrap_batch_size,
            maximum=settings.popular_list_max,
        )
        content_type = (content_type or "").strip().lower() or None
        try:
            items = await mangadex.fetch_discover(
                resolved_limit, content_type=content_type
            )
        except CatalogRequestError:
            logger.exception("Error fetching popular manga from MangaDex")
            return _error(500, "Failed to fetch popular manga")

        data = []
        for item in items:
            cover_url = (
                mangadex.cover_url(item.id, item.cover_file_name)
                if item.cover_file_name
                else ""
            )
            data.append(
                CachedManga.from_catalog(item, cover_url=cover_url).to_catalog_payload()
            )
        return JSONResponse({"data": data})

    @fastapi_app.get("/api/manga/init")
    async def initialize_popular_manga() -> JSONResponse:
        bootstrap = get_bootstrap_service(fastapi_app)
        try:
            report = await bootstrap.run()
        except (CatalogRequestError, SQLAlchemyError):
            logger.exception("Error initializing popular manga")
            return _error(500, "Failed to initialize popular manga")
        return JSONResponse(report.to_payload())

    @fastapi_app.get("/api/manga/{manga_id}")
    async def manga_detail(manga_id: str) -> JSONResponse:
        candidate = manga_id.strip()
        if not candidate:
            return _error(400, "ID parameter is required and cannot be empty")
        if not UUID_RE.match(candidate):
            return _error(400, "Invalid ID format. Must be a valid UUID.")

        mangadex = get_mangadex(fastapi_app)
        try:
            payload = await mangadex.get_manga(candidate)
        except CatalogRequestError as exc:
            logger.warning("Error fetching manga %s: %s", candidate, exc)
            return _catalog_error_response(
                exc, bad_request="Invalid manga ID", not_found="Manga not found"
            )
        return JSONResponse(payload)

    @fastapi_app.get("/api/user/favorites")
    async def list_favorites(userId: str | None = None) -> JSONResponse:
        if not userId:
            return _error(400, "User ID is required")
        library = get_user_library(fastapi_app)
        try:
            favorites = await library.list_favorites(userId)
        except SQLAlchemyError:
            logger.exception("Error fetching favorites")
            return _error(500, "Internal server error")
        return JSONResponse({"favorites": [entry.to_payload() for entry in favorites]})

    @fastapi_app.post("/api/user/favorites")
    async def add_favorite(request: Request) -> JSONResponse:
        try:
            body = FavoriteCreate.model_validate(await _read_json_body(request))
        except ValidationError:
            body = FavoriteCreate()
        if not (body.user_id and body.manga_id):
            return _error(400, "User ID and Manga ID are required")
        library = get_user_library(fastapi_app)
        try:
            favorite = await library.add_favorite(body.user_id, body.manga_id)
        except SQLAlchemyError:
            logger.exception("Error adding to favorites")
            return _error(500, "Internal server error")
        return JSONResponse(
            {"message": "Added to favorites", "favorite": favorite.to_payload()}
        )

    @fastapi_app.delete("/api/user/favorites")
    async def remove_favorite(
        userId: str | None = None, mangaId: str | None = None
    ) -> JSONResponse:
        if not (userId and mangaId):
            return _error(400, "User ID and Manga ID are required")
        library = get_user_library(fastapi_app)
        try:
            await library.remove_favorite(userId, mangaId)
        except SQLAlchemyError:
            logger.exception("Error removing from favorites")
            return _error(500, "Internal server error")
        return JSONResponse({"message": "Removed from favorites"})

    @fastapi_app.get("/api/user/history")
    async def list_history(userId: str | None = None) -> JSONResponse:
        if not userId:
            return _error(400, "User ID is required")
        library = get_user_library(fastapi_app)
        try:
            history = await library.list_history(
                userId, limit=settings.history_list_limit
            )
        except SQLAlchemyError:
            logger.exception("Error fetching reading history")
            return _error(500, "Internal server error")
        return JSONResponse({"history": [entry.to_payload() for entry in history]})

    @fastapi_app.post("/api/user/history")
    async def record_history(request: Request) -> JSONResponse:
        try:
            body = HistoryUpdate.model_validate(await _read_json_body(request))
        except ValidationError:
            body = HistoryUpdate()
        if not (body.user_id and body.manga_id and body.chapter_id):
            return _error(400, "User ID, Manga ID, and Chapter ID are required")
        library = get_user_library(fastapi_app)
        try:
            entry = await library.record_progress(
                body.user_id,
                body.manga_id,
                body.chapter_id,
                progress=body.page or 0,
            )
        except SQLAlchemyError:
            logger.exception("Error updating reading history")
            return _error(500, "Internal server error")
        return JSONResponse(
            {"message": "Reading progress updated", "history": entry.to_payload()}
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
