from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_runtime
from models.match import MatchFilters, MatchQueryResponse, SimilarPosting
from models.profile import Location, Profile
from models.requests import MarketInsightsRequest, TextDocumentRequest
from models.responses import EnqueueResponse, HealthResponse, QueueCounts
from models.task import TaskStatusView
from services.document_reader import SUPPORTED_TYPES, normalize_file_type
from services.errors import InvalidTaskInput, PostingNotFound, ProfileNotFound, TaskNotFound
from services.pipeline.handlers import ANALYTICS, DOCUMENT_PROCESSING
from services.runtime import Runtime

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse)
async def health(runtime: Runtime = Depends(get_runtime)):
    caps = runtime.capabilities
    return HealthResponse(
        status="ok",
        queue_available=caps.queue_available,
        cache_available=caps.cache_available,
        mode=caps.mode,
    )


async def _enqueue(runtime: Runtime, queue: str, payload: dict) -> EnqueueResponse:
    try:
        handle = await runtime.queue.enqueue(queue, payload)
    except InvalidTaskInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    return EnqueueResponse(task_id=handle.task_id, mode=handle.mode)


@router.post("/documents", response_model=EnqueueResponse, status_code=202)
@limiter.limit("30/minute")
async def upload_document(
    request: Request,
    document: UploadFile = File(...),
    subject_id: str = Form(...),
    city: str | None = Form(None),
    state: str | None = Form(None),
    country: str | None = Form(None),
    is_remote: bool = Form(False),
    notify: bool = Form(False),
    runtime: Runtime = Depends(get_runtime),
):
    file_type = normalize_file_type(None, document.filename)
    if file_type not in SUPPORTED_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF and plain text files are accepted")

    # Read and validate size
    content = await document.read()
    max_bytes = runtime.settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {runtime.settings.max_upload_size_mb}MB",
        )
    if not content.strip():
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    location = Location(city=city, state=state, country=country, is_remote=is_remote)
    source_ref = runtime.reader.store.put(content)
    return await _enqueue(runtime, DOCUMENT_PROCESSING, {
        "subject_id": subject_id,
        "source_ref": source_ref,
        "file_type": file_type,
        "location": location.model_dump() if location.is_known or is_remote else None,
        "notify": notify,
    })


@router.post("/documents/text", response_model=EnqueueResponse, status_code=202)
@limiter.limit("30/minute")
async def submit_text(
    request: Request,
    body: TextDocumentRequest,
    runtime: Runtime = Depends(get_runtime),
):
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="Document text is empty")
    source_ref = runtime.reader.store.put(body.text.encode("utf-8"))
    return await _enqueue(runtime, DOCUMENT_PROCESSING, {
        "subject_id": body.subject_id,
        "source_ref": source_ref,
        "file_type": "txt",
        "location": body.location.model_dump() if body.location else None,
        "notify": body.notify,
    })


@router.get("/tasks/{task_id}", response_model=TaskStatusView)
async def task_status(task_id: str, runtime: Runtime = Depends(get_runtime)):
    try:
        return runtime.queue.get_status(task_id)
    except TaskNotFound:
        raise HTTPException(status_code=404, detail="Task not found")


@router.delete("/tasks/{task_id}")
async def cancel_task(task_id: str, runtime: Runtime = Depends(get_runtime)):
    try:
        cancelled = runtime.queue.cancel(task_id)
    except TaskNotFound:
        raise HTTPException(status_code=404, detail="Task not found")
    if not cancelled:
        raise HTTPException(status_code=409, detail="Only pending tasks can be cancelled")
    return {"task_id": task_id, "cancelled": True}


@router.get("/profiles/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str, runtime: Runtime = Depends(get_runtime)):
    try:
        return runtime.profiles.get(profile_id)
    except ProfileNotFound:
        raise HTTPException(status_code=404, detail="Profile not found")


@router.get("/profiles/{profile_id}/matches", response_model=MatchQueryResponse)
async def get_matches(
    profile_id: str,
    limit: int | None = Query(None, ge=1, le=100),
    location: str | None = None,
    remote_only: bool | None = None,
    min_salary: float | None = None,
    max_salary: float | None = None,
    employment_type: str | None = None,
    seniority_level: str | None = None,
    runtime: Runtime = Depends(get_runtime),
):
    filters = MatchFilters(
        limit=limit,
        location=location,
        remote_only=remote_only,
        min_salary=min_salary,
        max_salary=max_salary,
        employment_type=employment_type,
        seniority_level=seniority_level,
    )
    try:
        return runtime.matches.get_matches(profile_id, filters)
    except ProfileNotFound:
        raise HTTPException(status_code=404, detail="Profile not found")


@router.get("/postings/{posting_id}/similar", response_model=list[SimilarPosting])
async def similar_postings(
    posting_id: str,
    limit: int = Query(5, ge=1, le=20),
    runtime: Runtime = Depends(get_runtime),
):
    try:
        return runtime.matches.similar_postings(posting_id, limit)
    except PostingNotFound:
        raise HTTPException(status_code=404, detail="Posting not found")


@router.post("/analytics/market", response_model=EnqueueResponse, status_code=202)
@limiter.limit("10/minute")
async def market_analysis(
    request: Request,
    body: MarketInsightsRequest,
    runtime: Runtime = Depends(get_runtime),
):
    return await _enqueue(runtime, ANALYTICS, body.model_dump())


@router.get("/queues", response_model=dict[str, QueueCounts])
async def queue_counts(runtime: Runtime = Depends(get_runtime)):
    return runtime.queue.queue_counts()
