from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from starlette.requests import ClientDisconnect

from ..deps import get_file_ops, get_ingester, http_error
from ..schemas import CreateDirectoryRequest, DirDescOut, OperationResponse
from ..services.errors import ErrorKind, FileServiceError, OperationResult, TargetMissing
from ..services.file_ops import FileOps, ServeAsFile
from ..services.multipart import MultipartStream
from ..services.uploads import UploadIngester, UploadPart

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api', tags=['files'])


@router.get('/listing', response_model=DirDescOut)
@router.get('/listing/{path:path}', response_model=DirDescOut)
def list_files(
    path: str = '',
    sort_by: str = Query(default='name', pattern='^(name|size|date)$'),
    order: str = Query(default='asc', pattern='^(asc|desc)$'),
    ops: FileOps = Depends(get_file_ops),
):
    try:
        result = ops.list_dir(path)
    except FileServiceError as exc:
        raise http_error(exc)

    if isinstance(result, ServeAsFile):
        return RedirectResponse(f'/static/{quote(result.relative)}', status_code=308)

    reverse = order == 'desc'
    key_map = {'name': lambda e: e.name.lower(), 'size': lambda e: e.size, 'date': lambda e: e.last_accessed}
    result.entries.sort(key=key_map[sort_by], reverse=reverse)
    return DirDescOut.from_listing(result)


@router.post('/listing', response_model=OperationResponse)
@router.post('/listing/{path:path}', response_model=OperationResponse)
def create_dir(payload: CreateDirectoryRequest, path: str = '', ops: FileOps = Depends(get_file_ops)):
    try:
        result = ops.mkdir(path, payload.dir_name)
    except FileServiceError as exc:
        raise http_error(exc)
    return OperationResponse.from_result(result)


@router.delete('/listing', response_model=OperationResponse)
@router.delete('/listing/{path:path}', response_model=OperationResponse)
def delete(path: str = '', ops: FileOps = Depends(get_file_ops)):
    try:
        result = ops.delete(path)
    except FileServiceError as exc:
        raise http_error(exc)
    return OperationResponse.from_result(result)


@router.post('/upload', response_model=OperationResponse)
@router.post('/upload/{path:path}', response_model=OperationResponse)
async def upload(
    request: Request,
    path: str = '',
    filename: str | None = Query(default=None),
    ingester: UploadIngester = Depends(get_ingester),
):
    """Accepts either a multipart form with any number of files or a raw body named by ``filename``."""
    logger.info('upload path: %s, filename: %s', path, filename)
    content_type = request.headers.get('content-type', '')

    try:
        if content_type.startswith('multipart/form-data'):
            parts = MultipartStream(content_type, request.stream()).parts()
            report = await ingester.ingest(path, parts)
        else:
            report = await ingester.ingest(path, [UploadPart(filename, request.stream())])
    except TargetMissing as exc:
        return OperationResponse.from_result(OperationResult.failed(str(exc), ErrorKind.TARGET_MISSING))
    except ClientDisconnect:
        logger.warning('Client disconnected during upload to %s', path)
        return OperationResponse.from_result(OperationResult.failed('Client disconnected', ErrorKind.IO_FAILURE))
    except FileServiceError as exc:
        raise http_error(exc)

    return OperationResponse.from_result(report.to_result())
