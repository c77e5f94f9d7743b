"""FastAPI application for the scholia local JSON API."""

import secrets
import threading
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ..adapters.json_codec import (
    block_to_dict,
    file_entry_to_dict,
    file_notes_to_dict,
    highlight_to_dict,
)
from ..core.graph import build_graph
from ..core.model import HighlightColor


class OpenRequest(BaseModel):
    uri: str


class HighlightRequest(BaseModel):
    uri: str
    block_index: int
    start: int
    end: int
    color: HighlightColor = HighlightColor.YELLOW
    comment: str | None = None
    tags: list[str] = []


class HighlightEdit(BaseModel):
    uri: str
    color: HighlightColor | None = None
    comment: str | None = None
    tags: list[str] | None = None


class BookmarkToggle(BaseModel):
    uri: str
    block_index: int
    label: str | None = None


def create_app(runtime: Any, token: str | None = None, enable_cors: bool = False) -> FastAPI:
    """
    Create FastAPI application with runtime injected.

    Args:
        runtime: Runtime instance with library and layout engine
        token: Bearer token for authentication (None to disable auth)
        enable_cors: Enable CORS middleware

    Returns:
        FastAPI application instance
    """
    library = runtime.library
    # mutations touch the shared index; run them one at a time
    write_lock = threading.Lock()

    app = FastAPI(
        title="Scholia API",
        description="Local JSON API for scholia annotations",
        version="0.1.0",
        docs_url="/docs" if token is None else None,
        redoc_url="/redoc" if token is None else None,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if token:
        security_scheme = HTTPBearer(auto_error=False)

        async def verify_token(
            credentials: HTTPAuthorizationCredentials | None = Security(security_scheme),  # noqa: B008
        ) -> None:
            """Verify bearer token."""
            if credentials is None or credentials.credentials != token:
                raise HTTPException(status_code=401, detail="Invalid or missing token")
    else:

        async def verify_token() -> None:
            """No-op when auth is disabled."""
            return None

    def require_notes(uri: str) -> Any:
        notes = library.notes_for(uri)
        if notes is None:
            raise HTTPException(status_code=404, detail=f"Document {uri} has not been opened")
        return notes

    @app.get("/health")
    def health(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/documents")
    def documents(auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        """Recently opened documents, newest first."""
        return [file_entry_to_dict(e) for e in library.recent_documents()]

    @app.post("/documents/open")
    def open_document(req: OpenRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Parse a document and reconcile it with its annotations."""
        with write_lock:
            opened = library.open_document(req.uri)
        if not opened.ok:
            raise HTTPException(status_code=422, detail=opened.error)
        return {
            "uri": opened.uri,
            "name": opened.name,
            "stale": opened.stale,
            "blocks": [block_to_dict(b) for b in opened.blocks],
            "notes": file_notes_to_dict(opened.notes),
        }

    @app.get("/documents/notes")
    def document_notes(
        uri: str = Query(..., description="Document uri"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Stored annotations for a document."""
        return file_notes_to_dict(require_notes(uri))

    @app.post("/highlights")
    def add_highlight(req: HighlightRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Highlight a selection on a block."""
        require_notes(req.uri)
        with write_lock:
            opened = library.open_document(req.uri)
            if not opened.ok:
                raise HTTPException(status_code=422, detail=opened.error)
            _, highlight = library.highlight_selection(
                req.uri,
                opened.blocks,
                req.block_index,
                req.start,
                req.end,
                color=req.color,
                comment=req.comment,
                tags=req.tags,
            )
        if highlight is None:
            raise HTTPException(status_code=422, detail="Selection is empty or not highlightable")
        return highlight_to_dict(highlight)

    @app.put("/highlights/{highlight_id}")
    def edit_highlight(
        highlight_id: str, req: HighlightEdit, auth: None = Depends(verify_token)
    ) -> dict[str, Any]:
        """Change colour, comment or tags of a highlight."""
        require_notes(req.uri)
        with write_lock:
            notes = library.edit_highlight(
                req.uri, highlight_id, color=req.color, comment=req.comment, tags=req.tags
            )
        for h in notes.highlights:
            if h.id == highlight_id:
                return highlight_to_dict(h)
        raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")

    @app.delete("/highlights/{highlight_id}")
    def delete_highlight(
        highlight_id: str,
        uri: str = Query(..., description="Document uri"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Delete a highlight; unknown ids are a no-op."""
        require_notes(uri)
        with write_lock:
            notes = library.delete_highlight(uri, highlight_id)
        return {"highlights": len(notes.highlights)}

    @app.post("/bookmarks/toggle")
    def toggle_bookmark(req: BookmarkToggle, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Add a bookmark on a block, or remove the ones already there."""
        require_notes(req.uri)
        with write_lock:
            notes = library.toggle_bookmark(req.uri, req.block_index, req.label)
        bookmarked = any(b.block_index == req.block_index for b in notes.bookmarks)
        return {"bookmarked": bookmarked, "bookmarks": len(notes.bookmarks)}

    @app.get("/tags")
    def tags(
        q: str = Query("", description="Substring filter"),
        auth: None = Depends(verify_token),
    ) -> list[str]:
        """Tag vocabulary, optionally filtered."""
        return library.suggest_tags(q)

    @app.get("/graph")
    def graph(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Tag co-occurrence graph."""
        return build_graph(library.all_notes()).to_dict()

    @app.get("/graph/layout")
    def graph_layout(
        steps: int | None = Query(None, description="Simulation steps", ge=0, le=2000),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Node positions from the force-directed layout."""
        data = build_graph(library.all_notes())
        positions = runtime.layout.run(data, steps=steps)
        return {tag: {"x": x, "y": y} for tag, (x, y) in positions.items()}

    return app


def generate_token() -> str:
    """Generate a random bearer token."""
    return secrets.token_urlsafe(32)
