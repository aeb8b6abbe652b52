from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinels: "not found" is never the empty string
UNSET = "—"
UNKNOWN_NAME = "Unknown"


class SeniorityFit(str, Enum):
    STRONG = "Strong"
    MEDIUM = "Medium"
    WEAK = "Weak"


class UploadedDocument(BaseModel):
    """An uploaded file, consumed once by the text extractor."""
    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes


class CandidateEntities(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate_name: str = UNKNOWN_NAME
    email: str = UNSET
    phone: str = UNSET
    linkedin: str = UNSET

    @field_validator("candidate_name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return v.strip() or UNKNOWN_NAME

    @field_validator("email", "phone", "linkedin")
    @classmethod
    def blank_is_unset(cls, v: str) -> str:
        return v.strip() or UNSET


class ScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_score: int = Field(ge=0, le=100)
    seniority_fit: SeniorityFit = SeniorityFit.MEDIUM
    skills_match: Optional[str] = None
    summary: str = ""


class RankedResult(BaseModel):
    resume_name: str
    jd_name: str
    candidate_name: str = UNKNOWN_NAME
    email: str = UNSET
    phone: str = UNSET
    linkedin: str = UNSET
    match_score: int = Field(ge=0, le=100)
    skills_match: Optional[str] = None
    seniority_fit: SeniorityFit
    summary: str
    failed: bool = False

    @classmethod
    def from_parts(cls, resume_name: str, jd_name: str, entities: CandidateEntities, score: ScoreResult) -> "RankedResult":
        return cls(
            resume_name=resume_name,
            jd_name=jd_name,
            **entities.model_dump(),
            **score.model_dump(),
        )

    @classmethod
    def failure(cls, resume_name: str, jd_name: str, reason: str) -> "RankedResult":
        return cls(
            resume_name=resume_name,
            jd_name=jd_name,
            match_score=0,
            seniority_fit=SeniorityFit.WEAK,
            summary=f"Error: {reason}",
            failed=True,
        )
