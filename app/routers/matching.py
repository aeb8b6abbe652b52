from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.models.models import RankedResult, UploadedDocument
from app.models.response import BatchMatchResponse, ProviderInfo
from app.services.matching import MatchingService
from app.utils.exceptions import ValidationError
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter(prefix="/api", tags=["matching"])
logger = get_logger(__name__)

MAX_RESUMES = 100


def get_matching_service(request: Request) -> MatchingService:
    """The service is created once in the app lifespan and lives on app.state."""
    return request.app.state.matching_service


async def _read_upload(upload: UploadFile) -> UploadedDocument:
    content = await upload.read()
    return UploadedDocument(filename=upload.filename or "upload", content=content)


@router.post("/batch-match", response_model=BatchMatchResponse)
@log_api_call("batch-match")
async def batch_match(
    request: Request,
    resumes: Optional[List[UploadFile]] = File(None),
    jd: Optional[UploadFile] = File(None),
    service: MatchingService = Depends(get_matching_service),
):
    """Rank every uploaded resume against a single JD"""
    request_id = getattr(request.state, 'request_id', 'unknown')

    if not resumes or jd is None:
        logger.warning("Batch match rejected: missing resumes or JD", extra={"request_id": request_id})
        raise ValidationError("Missing resumes or JD file", field="resumes" if not resumes else "jd")
    if len(resumes) > MAX_RESUMES:
        raise ValidationError(f"At most {MAX_RESUMES} resumes per batch", field="resumes", value=len(resumes))

    resume_docs = [await _read_upload(r) for r in resumes]
    jd_doc = await _read_upload(jd)

    logger.info(
        f"Batch match: {len(resume_docs)} resumes against {jd_doc.filename}",
        extra={"request_id": request_id, "resume_count": len(resume_docs)}
    )

    ranked = await service.run_batch(resume_docs, jd_doc)
    return BatchMatchResponse(total=len(ranked), ranked_results=ranked)


@router.post("/match", response_model=RankedResult)
@log_api_call("match")
async def match(
    request: Request,
    resume: Optional[UploadFile] = File(None),
    jd: Optional[UploadFile] = File(None),
    service: MatchingService = Depends(get_matching_service),
):
    """Score one resume against one JD (compatibility endpoint)"""
    if resume is None or jd is None:
        raise ValidationError("Missing resume or JD file", field="resume" if resume is None else "jd")

    return await service.match_single(await _read_upload(resume), await _read_upload(jd))


@router.get("/provider", response_model=ProviderInfo)
async def provider_info(service: MatchingService = Depends(get_matching_service)):
    """Which LLM provider this deployment talks to"""
    client = service.scoring_client
    return ProviderInfo(
        provider=client.provider.value,
        model=client.settings.model_name,
        endpoint=client.adapter.url,
    )
