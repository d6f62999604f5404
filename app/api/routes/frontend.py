from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse, Response

router = APIRouter(tags=["Frontend"], include_in_schema=False)

INDEX_DOCUMENT = "index.html"


def _resolve_static_file(static_dir: Path, requested: str) -> Path | None:
    """Return the requested asset if it exists inside ``static_dir``."""
    if not requested:
        return None
    candidate = (static_dir / requested).resolve()
    if not candidate.is_relative_to(static_dir.resolve()) or not candidate.is_file():
        return None
    return candidate


@router.get("/{full_path:path}")
def serve_frontend(full_path: str, request: Request) -> Response:
    """Serve a static asset, falling back to the frontend entry document.

    Any GET that no API route matched lands here: existing files under the
    static directory are served as-is, everything else gets ``index.html``.
    """
    static_dir = Path(request.app.state.static_dir)

    asset = _resolve_static_file(static_dir, full_path)
    if asset is not None:
        return FileResponse(asset)

    index = static_dir / INDEX_DOCUMENT
    if index.is_file():
        return FileResponse(index)

    return JSONResponse(status_code=404, content={"success": False, "message": "Not found"})
