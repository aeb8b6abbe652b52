"""
Batch orchestration: one JD against N resumes.

Resumes are processed one after another; each goes through the compiled
pipeline graph (parse -> entities -> score). A failure in any step becomes a
zero-score result for that resume only, so the batch always returns one
entry per submitted resume, ranked by score (stable on ties).
"""
import asyncio
import functools
from typing import List

from app.helpers.parsing import extract_text
from app.models.ai_settings import AppSettings
from app.models.models import RankedResult, UploadedDocument
from app.services.entities import EntityExtractor, NameCache
from app.services.graph import build_graph
from app.services.scoring import ScoringClient
from app.services.throttle import RequestThrottle
from app.utils.exceptions import ResumeMatcherError
from app.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)


def rank_results(results: List[RankedResult]) -> List[RankedResult]:
    # sorted() is stable, also with reverse=True
    return sorted(results, key=lambda r: r.match_score, reverse=True)


class MatchingService:
    """Owns the process-wide throttle, name cache and scoring client.

    Build it once at startup with ``from_settings`` and share it between
    requests; tests construct it directly with fakes.
    """

    def __init__(self, scoring_client: ScoringClient, entity_extractor: EntityExtractor, max_text_chars: int = 2000):
        self.scoring_client = scoring_client
        self.entity_extractor = entity_extractor
        self.max_text_chars = max_text_chars
        self.pipeline = build_graph(
            parse=self.extract_text,
            extract=self.entity_extractor.extract_entities,
            score=self.scoring_client.score,
        )

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "MatchingService":
        llm = settings.llm
        throttle = RequestThrottle(delay=llm.request_delay, call_timeout=llm.timeout + 5)
        client = ScoringClient(llm, throttle)
        extractor = EntityExtractor(
            scoring_client=client,
            cache=NameCache(),
            name_prompt_chars=settings.extraction.name_prompt_chars,
            country_code=settings.extraction.phone_country_code,
        )
        return cls(client, extractor, max_text_chars=settings.extraction.max_text_chars)

    async def aclose(self) -> None:
        throttle = getattr(self.scoring_client, "throttle", None)
        if throttle is not None:
            await throttle.aclose()

    async def extract_text(self, document: UploadedDocument) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(extract_text, document.content, document.filename, self.max_text_chars),
        )

    async def process_resume(self, resume: UploadedDocument, jd_text: str, jd_name: str) -> RankedResult:
        state = await self.pipeline.ainvoke({"resume": resume, "jd_text": jd_text})
        return RankedResult.from_parts(resume.filename, jd_name, state["entities"], state["result"])

    async def run_batch(self, resumes: List[UploadedDocument], jd: UploadedDocument) -> List[RankedResult]:
        with PerformanceMonitor(f"batch match of {len(resumes)} resumes against {jd.filename}", logger,
                                threshold_ms=30000 * max(1, len(resumes))):
            jd_text = await self.extract_text(jd)

            results: List[RankedResult] = []
            for resume in resumes:
                try:
                    result = await self.process_resume(resume, jd_text, jd.filename)
                    logger.info(f"Processed: {resume.filename} ({result.match_score}%)")
                except Exception as e:
                    reason = e.message if isinstance(e, ResumeMatcherError) else str(e) or e.__class__.__name__
                    logger.error(f"Error processing {resume.filename}: {reason}")
                    result = RankedResult.failure(resume.filename, jd.filename, reason)
                results.append(result)

            return rank_results(results)

    async def match_single(self, resume: UploadedDocument, jd: UploadedDocument) -> RankedResult:
        jd_text = await self.extract_text(jd)
        return await self.process_resume(resume, jd_text, jd.filename)
