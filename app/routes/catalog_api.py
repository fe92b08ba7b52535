"""Catalog API routes — stats, categories, items, featured entry, export and loading."""
from __future__ import annotations

import gzip
import json
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from app.dependencies import get_library_service
from app.models.catalog import ContentType, MediaEntry
from app.services.library_service import LibraryService

router = APIRouter(tags=["catalog"])


def _entry_dict(entry: MediaEntry) -> dict:
    return entry.model_dump(mode="json", by_alias=True)


def _not_loaded(library: LibraryService) -> JSONResponse:
    return JSONResponse(
        {
            "status": "not_loaded",
            "loading": library.loading,
            "error": library.last_error,
            "progress": library.progress.model_dump(),
        },
        status_code=503,
    )


@router.get("/api/catalog/stats")
async def catalog_stats(library: LibraryService = Depends(get_library_service)):
    catalog = library.catalog
    if catalog is None:
        return _not_loaded(library)
    result = library.result
    return {
        "total": len(catalog.entries),
        "categories": len(catalog.categories),
        "types": catalog.type_counts(),
        "from_cache": result.from_cache,
        "persisted": result.persisted,
        "timestamp": result.timestamp,
        "elapsed": round(result.elapsed, 2),
    }


@router.get("/api/catalog/categories")
async def catalog_categories(library: LibraryService = Depends(get_library_service)):
    catalog = library.catalog
    if catalog is None:
        return _not_loaded(library)
    counts = catalog.category_counts()
    return {"categories": [{"name": name, "count": counts[name]} for name in sorted(counts)]}


@router.get("/api/catalog/items")
async def catalog_items(
    type: Optional[ContentType] = Query(None),
    category: Optional[str] = Query(None),
    search: str = Query(""),
    page: int = Query(1, ge=1),
    per_page: int = Query(100, ge=1, le=1000),
    library: LibraryService = Depends(get_library_service),
):
    catalog = library.catalog
    if catalog is None:
        return _not_loaded(library)
    items = catalog.filter(type=type, category=category, search=search)
    start = (page - 1) * per_page
    paginated = items[start : start + per_page]
    return {
        "items": [_entry_dict(e) for e in paginated],
        "total": len(items),
        "page": page,
        "per_page": per_page,
    }


@router.get("/api/catalog/items/{entry_id}")
async def catalog_item(entry_id: int, library: LibraryService = Depends(get_library_service)):
    catalog = library.catalog
    if catalog is None:
        return _not_loaded(library)
    entry = catalog.get(entry_id)
    if entry is None:
        return JSONResponse({"status": "error", "message": "Item not found"}, status_code=404)
    return _entry_dict(entry)


@router.get("/api/catalog/featured")
async def catalog_featured(library: LibraryService = Depends(get_library_service)):
    catalog = library.catalog
    if catalog is None:
        return _not_loaded(library)
    entry = catalog.featured()
    if entry is None:
        return JSONResponse({"status": "error", "message": "Catalog is empty"}, status_code=404)
    return _entry_dict(entry)


@router.get("/api/catalog/export")
async def catalog_export(
    gzip_body: bool = Query(False, alias="gzip"),
    library: LibraryService = Depends(get_library_service),
):
    catalog = library.catalog
    if catalog is None:
        return _not_loaded(library)
    payload = json.dumps(catalog.to_compact(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    if gzip_body:
        return Response(
            content=gzip.compress(payload, compresslevel=9),
            media_type="application/gzip",
            headers={"Content-Disposition": 'attachment; filename="catalog.json.gz"'},
        )
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="catalog.json"'},
    )


@router.get("/api/catalog/progress")
async def catalog_progress(library: LibraryService = Depends(get_library_service)):
    return {
        "loading": library.loading,
        "loaded": library.catalog is not None,
        "error": library.last_error,
        "progress": library.progress.model_dump(),
    }


@router.post("/api/catalog/load")
async def trigger_load(
    force: bool = Query(False),
    library: LibraryService = Depends(get_library_service),
):
    if not library.start_background_load(force=force):
        return {"status": "already_running", "message": "A load is already in progress"}
    return {"status": "load_started", "message": "Playlist load has been triggered in the background"}
