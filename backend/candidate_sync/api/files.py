"""Public download endpoint for stored attachment files."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from candidate_sync.schemas.common import NotFoundResponse
from candidate_sync.services.file_storage import DatabaseFileStore

import structlog

logger = structlog.get_logger()
router = APIRouter(tags=["files"])


def get_file_store() -> DatabaseFileStore:
    return DatabaseFileStore()


@router.get("/files/{file_id}", responses={404: {"model": NotFoundResponse}})
async def get_stored_file(file_id: int, store: DatabaseFileStore = Depends(get_file_store)):
    """Serve a stored file inline. Stored files never change, so they cache for a year."""
    stored = await store.get(file_id)
    if not stored:
        logger.info("stored_file_not_found", file_id=file_id)
        return JSONResponse(status_code=404, content=NotFoundResponse(error="File not found").model_dump())

    return Response(
        content=stored.data,
        media_type=stored.mimetype,
        headers={
            "Content-Disposition": f'inline; filename="{stored.filename}"',
            "Cache-Control": "public, max-age=31536000",
        },
    )
