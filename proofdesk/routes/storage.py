"""
Development Storage Route

Stands in for the object store outside production: accepts the PUT a browser
makes to a signed upload URL, checks the signature and reports the byte count.
The bytes are discarded.

PUT /api/storage/dev/upload/{storage_key}?expires=...&sig=...
"""

import logging

from fastapi import APIRouter, Query, Request

from proofdesk.exceptions import InvalidUploadSignature
from proofdesk.services.storage_service import verify_upload_signature

router = APIRouter(prefix="/api/storage/dev", tags=["Storage"])
logger = logging.getLogger(__name__)


@router.put("/upload/{storage_key:path}")
async def dev_upload_route(
    storage_key: str,
    request: Request,
    expires: int = Query(...),
    sig: str = Query(...),
) -> dict:
    if not verify_upload_signature(storage_key, expires, sig):
        raise InvalidUploadSignature(storage_key)
    body = await request.body()
    logger.debug("Dev upload accepted: key=%s bytes=%d", storage_key, len(body))
    return {"ok": True, "bytes": len(body)}
