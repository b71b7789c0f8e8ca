from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..deps import get_file_ops, get_probe, http_error
from ..services.errors import FileServiceError
from ..services.file_ops import FileOps
from ..services.probe import MediaProbe

router = APIRouter(prefix='/api', tags=['media'])


@router.get('/probe/{path:path}')
async def probe_file(path: str, ops: FileOps = Depends(get_file_ops), probe: MediaProbe = Depends(get_probe)):
    try:
        output = await probe.probe(ops.safe_path(path))
    except FileServiceError as exc:
        raise http_error(exc)
    return Response(content=output, media_type='application/json')
