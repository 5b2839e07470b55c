"""
NewsFlow HTTP Server
REST API over the aggregation pipeline, the article extractor and the
links library.

Usage:
    python http_server.py                    # Run on default port 8000
    python http_server.py --port 3000        # Run on custom port
    uvicorn http_server:app --host 0.0.0.0   # Production with uvicorn
"""
import sys
import os
import argparse
import threading
from typing import Any, Optional
from contextlib import asynccontextmanager

# Add parent directory to path to import from main.py
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from main import (
    DB_PATH,
    VERSION,
    fetch_and_categorize_news,
    get_health,
    get_metrics,
    should_update_featured_news,
    update_featured_news,
    logger,
)
from extractor import fetch_and_extract
from formatter import (
    build_extract_payload,
    build_featured_payload,
    build_news_payload,
    build_proxy_read_payload,
)
from links_library import DatabaseError, LinkNotFoundError, LinksLibrary

ENDPOINTS = {
    "news": "GET /api/news?refresh=false - Clustered news and featured articles",
    "featured": "GET /api/featured?refresh=false&last_updated=<ms> - Featured articles",
    "extract": "GET /api/extract?url=... - Readable article content",
    "proxy_read": "GET /api/proxy-read?url=... - Sanitized reader view",
    "links": "GET /api/links?source=&is_featured=&limit=100 - Saved links",
    "add_link": "POST /api/add-link - Save a link",
    "link": "GET|PUT|DELETE /api/links/{id} - Single saved link",
    "health": "GET /api/health - Health check",
    "metrics": "GET /api/metrics - Server metrics",
}

# =============================================================================
# FASTAPI APP SETUP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI app."""
    logger.info("NewsFlow HTTP Server starting...")
    yield
    logger.info("NewsFlow HTTP Server shutting down...")

app = FastAPI(
    title="NewsFlow API",
    description="RSS aggregation, ranking and readable article extraction",
    version=VERSION,
    lifespan=lifespan
)

# Enable CORS for the reading UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_library: Optional[LinksLibrary] = None
_library_lock = threading.Lock()


def get_library() -> LinksLibrary:
    """Links library bound to NEWSFLOW_DB_PATH, created on first use."""
    global _library

    with _library_lock:
        if _library is None:
            _library = LinksLibrary(DB_PATH)
    return _library


class LinkCreate(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None
    source: Optional[str] = None
    tags: Any = None
    user_notes: str = ''
    is_featured: bool = False


class LinkUpdate(BaseModel):
    title: Optional[str] = None
    tags: Any = None
    user_notes: Optional[str] = None
    is_featured: Optional[bool] = None


def _failure(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return JSONResponse(
        status_code=404,
        content={"error": "Not found", "path": request.url.path, "availablePaths": ENDPOINTS},
    )

# =============================================================================
# NEWS ENDPOINTS
# =============================================================================

@app.get("/api/news")
def news_endpoint(refresh: bool = Query(False, description="Bypass the aggregation cache")):
    """
    Clustered news plus the featured top articles.

    Example: /api/news?refresh=true
    """
    return build_news_payload(fetch_and_categorize_news(refresh))


@app.get("/api/featured")
def featured_endpoint(
    refresh: bool = Query(False, description="Force a refresh"),
    last_updated: Optional[int] = Query(None, description="Client's last refresh time, epoch ms")
):
    """Featured articles, refreshed at most once a day unless forced."""
    if refresh or should_update_featured_news(last_updated):
        update = update_featured_news()
        return build_featured_payload(update['articles'], update['timestamp'], updated=True)

    result = fetch_and_categorize_news(False)
    return build_featured_payload(result['featured'], last_updated, updated=False)

# =============================================================================
# EXTRACTION ENDPOINTS
# =============================================================================

@app.get("/api/extract")
def extract_endpoint(url: Optional[str] = Query(None, description="Article URL")):
    """
    Readable content for an article page. Failures are reported in-band.

    Example: /api/extract?url=https://example.com/story
    """
    if not url:
        return JSONResponse(status_code=400, content={"error": "URL parameter is required"})
    return build_extract_payload(fetch_and_extract(url))


@app.get("/api/proxy-read")
def proxy_read_endpoint(url: Optional[str] = Query(None, description="Article URL")):
    """Sanitized reader view of an article. Nothing is stored."""
    if not url:
        return _failure(400, "Missing url parameter")
    return build_proxy_read_payload(fetch_and_extract(url, strict=True))

# =============================================================================
# LINKS LIBRARY ENDPOINTS
# =============================================================================

@app.get("/api/links")
def list_links_endpoint(
    source: Optional[str] = Query(None),
    is_featured: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    library: LinksLibrary = Depends(get_library)
):
    try:
        links = library.list_links(source=source, is_featured=is_featured, limit=limit)
    except DatabaseError as e:
        logger.error("Failed to fetch links: %s", e)
        return _failure(500, "Failed to fetch links", str(e))
    return {"success": True, "data": links, "count": len(links)}


@app.post("/api/add-link")
def add_link_endpoint(link: LinkCreate, library: LinksLibrary = Depends(get_library)):
    if not link.url or not link.title or not link.source:
        return _failure(400, "Missing required fields: url, title, source")
    try:
        link_id = library.add_link(link.url, link.title, link.source, tags=link.tags,
                                   user_notes=link.user_notes, is_featured=link.is_featured)
    except DatabaseError as e:
        logger.error("Failed to add link: %s", e)
        return _failure(500, "Failed to add link", str(e))
    return {"success": True, "id": link_id, "message": "Link added successfully"}


@app.get("/api/links/{link_id}")
def get_link_endpoint(link_id: int, library: LinksLibrary = Depends(get_library)):
    try:
        link = library.get_link(link_id)
    except LinkNotFoundError:
        return _failure(404, "Link not found")
    except DatabaseError as e:
        logger.error("Failed to fetch link %d: %s", link_id, e)
        return _failure(500, "Failed to fetch link", str(e))
    return {"success": True, "data": link}


@app.put("/api/links/{link_id}")
def update_link_endpoint(link_id: int, update: LinkUpdate,
                         library: LinksLibrary = Depends(get_library)):
    try:
        library.update_link(link_id, title=update.title, tags=update.tags,
                            user_notes=update.user_notes, is_featured=update.is_featured)
    except ValueError as e:
        return _failure(400, str(e))
    except LinkNotFoundError:
        return _failure(404, "Link not found")
    except DatabaseError as e:
        logger.error("Failed to update link %d: %s", link_id, e)
        return _failure(500, "Failed to update link", str(e))
    return {"success": True, "message": "Link updated successfully"}


@app.delete("/api/links/{link_id}")
def delete_link_endpoint(link_id: int, library: LinksLibrary = Depends(get_library)):
    try:
        library.delete_link(link_id)
    except LinkNotFoundError:
        return _failure(404, "Link not found")
    except DatabaseError as e:
        logger.error("Failed to delete link %d: %s", link_id, e)
        return _failure(500, "Failed to delete link", str(e))
    return {"success": True, "message": "Link deleted successfully"}

# =============================================================================
# HEALTH, METRICS AND INFO
# =============================================================================

@app.get("/api/health")
async def health_endpoint():
    """Health check endpoint."""
    return get_health()

@app.get("/api/metrics")
async def metrics_endpoint():
    """Get server metrics."""
    return get_metrics()

@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "NewsFlow API",
        "version": VERSION,
        "status": "ok",
        "endpoints": ENDPOINTS,
    }

# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main():
    """Run the HTTP server."""
    parser = argparse.ArgumentParser(description="NewsFlow HTTP Server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to run on")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    args = parser.parse_args()

    print(f"NewsFlow HTTP Server running at http://{args.host}:{args.port}")
    for description in ENDPOINTS.values():
        print(f"  • {description}")

    uvicorn.run(
        "http_server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )

if __name__ == "__main__":
    main()
