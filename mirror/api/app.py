"""HTTP API for the mirror UI: list CRUD plus a health check.

Thin pass-through over the injected ListStore. The poll scheduler, when
given, runs for the lifetime of the app.

Routes (``/api/items`` is the default shopping list)::

    GET    /api/items | /api/{category}-items   -> {"items": [...]}
    POST   /api/items | /api/{category}-items   -> merge {"items": [...]}
    PUT    /api/items | /api/{category}-items   -> replace with {"items": [...]}
    DELETE /api/items | /api/{category}-items   -> clear
    GET    /health
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from mirror.config import google_calendar_configured, mailbox_configured
from mirror.lists.categories import parse_category
from mirror.lists.store import ListStore
from mirror.orchestrator.scheduler import PollScheduler
from mirror.schemas.lists import (
    DEFAULT_CATEGORY,
    ClearedResponse,
    HealthResponse,
    IntegrationStatus,
    ItemsResponse,
    ListCategory,
)

logger = logging.getLogger(__name__)


async def _read_items(request: Request) -> list[str] | None:
    """Pull the string items out of a ``{"items": [...]}`` body.

    Returns None for a missing or malformed body; the caller then leaves
    the list untouched and answers with its current state.
    """
    try:
        payload = await request.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    items = payload.get("items")
    if not isinstance(items, list):
        return None
    return [item for item in items if isinstance(item, str)]


def _resolve(category: str) -> ListCategory:
    try:
        return parse_category(category)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None


def create_app(store: ListStore, *, scheduler: PollScheduler | None = None) -> FastAPI:
    """Build the FastAPI app around a store (and optionally a poll scheduler)."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                await scheduler.stop()

    app = FastAPI(
        title="Mirror Lists",
        description="Household lists for the smart mirror, fed by email",
        lifespan=lifespan,
    )
    app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Handlers shared by the default and per-category routes ---

    def get_items(category: ListCategory) -> ItemsResponse:
        return ItemsResponse(items=store.items(category))

    async def add_items(category: ListCategory, request: Request) -> ItemsResponse:
        items = await _read_items(request)
        if items is None:
            logger.warning("Ignoring malformed add request for %s list", category.value)
        else:
            store.merge(category, items)
        return ItemsResponse(items=store.items(category))

    async def replace_items(category: ListCategory, request: Request) -> ItemsResponse:
        items = await _read_items(request)
        if items is None:
            logger.warning("Ignoring malformed replace request for %s list", category.value)
            return ItemsResponse(items=store.items(category))
        return ItemsResponse(items=store.replace_all(category, items))

    def clear_items(category: ListCategory) -> ClearedResponse:
        store.clear(category)
        return ClearedResponse()

    # --- Default list ---

    @app.get("/api/items", response_model=ItemsResponse)
    async def get_default_items():
        return get_items(DEFAULT_CATEGORY)

    @app.post("/api/items", response_model=ItemsResponse)
    async def add_default_items(request: Request):
        return await add_items(DEFAULT_CATEGORY, request)

    @app.put("/api/items", response_model=ItemsResponse)
    async def replace_default_items(request: Request):
        return await replace_items(DEFAULT_CATEGORY, request)

    @app.delete("/api/items", response_model=ClearedResponse)
    async def clear_default_items():
        return clear_items(DEFAULT_CATEGORY)

    # --- Per-category lists ---

    @app.get("/api/{category}-items", response_model=ItemsResponse)
    async def get_category_items(category: str):
        return get_items(_resolve(category))

    @app.post("/api/{category}-items", response_model=ItemsResponse)
    async def add_category_items(category: str, request: Request):
        return await add_items(_resolve(category), request)

    @app.put("/api/{category}-items", response_model=ItemsResponse)
    async def replace_category_items(category: str, request: Request):
        return await replace_items(_resolve(category), request)

    @app.delete("/api/{category}-items", response_model=ClearedResponse)
    async def clear_category_items(category: str):
        return clear_items(_resolve(category))

    # --- Health ---

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            counts=store.counts(),
            integrations={
                "mailbox": IntegrationStatus(configured=mailbox_configured()),
                "google_calendar": IntegrationStatus(configured=google_calendar_configured()),
            },
        )

    return app
