"""
Candidate entity extraction: name, email, phone and LinkedIn profile.

Names go through a fallback chain (cache, LLM, line heuristics, "Unknown");
the contact fields are regex based. Nothing here raises: every field
degrades to its sentinel.
"""
import re
from functools import lru_cache
from typing import Dict, Optional

from app.models.models import UNKNOWN_NAME, UNSET, CandidateEntities
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-z]{2,}")
LINKEDIN_RE = re.compile(r"(https?://)?(www\.)?linkedin\.com/in/[a-zA-Z0-9\-_%]+", re.IGNORECASE)
NAME_SHAPE_RE = re.compile(r"^[A-Z][a-z]+([\s\-'][A-Z][a-z]+)*(\s[A-Z])?$")
ALL_CAPS_RE = re.compile(r"^[A-Z\s]+$")
NOT_A_NAME_RE = re.compile(r"[0-9@:/!]")

NAME_SCAN_LINES = 20
NAME_MAX_LINE_LEN = 60

NAME_BLACKLIST = (
    # titles and fields
    "engineering", "engineer", "electronics", "communication",
    "computer", "science", "technology", "information", "embedded",
    "developer", "manager", "intern", "internship", "student",
    "graduate", "systems", "administrator", "profile", "summary",
    "resume", "curriculum",
    # institutions and places
    "university", "college", "chennai", "bangalore", "india",
    "switzerland", "germany", "france", "united states", "united kingdom",
    "zurich",
    # company suffixes
    "private", "ltd", "inc", "company", "corp", "tech", "solutions",
    "pvt", "llc", "gmbh", "srl", "group", "enterprises",
)


@lru_cache(maxsize=8)
def _phone_patterns(country_code: str):
    cc = re.escape(country_code)
    primary = re.compile(
        rf"(\+?{cc}|0)?[\s-]?[6-9]\d{{2}}[\s-]?\d{{3}}[\s-]?\d{{4}}"
        r"|(\+1[\s-]?)?(\(\d{3}\)|[\s-]?\d{3})[\s-]?\d{3}[\s-]?\d{4}"
    )
    prefixed = re.compile(rf"(\+{cc}\s?)?([6-9]\d{{9}})")
    parenthesized = re.compile(rf"\({cc}\)\s?([6-9]\d{{4}})[\s-]?(\d{{5}})")
    return primary, prefixed, parenthesized


def extract_email(text: str) -> str:
    m = EMAIL_RE.search(text)
    return m.group(0) if m else UNSET


def extract_phone(text: str, country_code: str = "91") -> str:
    primary, prefixed, parenthesized = _phone_patterns(country_code)

    m = primary.search(text)
    if m:
        phone = re.sub(r"[\s\-()]", "", m.group(0))
        phone = re.sub(r"^0", f"+{country_code}", phone)
        if phone:
            return phone

    for line in text.split("\n"):
        m = prefixed.search(line)
        if m:
            return re.sub(r"\s", "", m.group(0))
        m = parenthesized.search(line)
        if m:
            return f"+{country_code}{m.group(1)}{m.group(2)}"

    return UNSET


def extract_linkedin(text: str) -> str:
    m = LINKEDIN_RE.search(text)
    if not m:
        return UNSET
    url = m.group(0)
    return url if url.lower().startswith("http") else f"https://{url}"


def _title_case(line: str) -> str:
    return re.sub(r"\b\w", lambda c: c.group(0).upper(), line.lower())


def extract_name_heuristic(text: str) -> Optional[str]:
    """First early line shaped like a personal name, or None."""
    lines = [l.strip() for l in text.split("\n")]
    lines = [l for l in lines if 0 < len(l) < NAME_MAX_LINE_LEN]

    for line in lines[:NAME_SCAN_LINES]:
        lower = line.lower()
        if any(word in lower for word in NAME_BLACKLIST):
            continue
        if NOT_A_NAME_RE.search(line):
            continue

        normalized = _title_case(line) if ALL_CAPS_RE.match(line) else line
        if NAME_SHAPE_RE.match(normalized):
            return normalized

    return None


class NameCache:
    """Resume filename -> LLM-resolved name, kept for the life of the process."""

    def __init__(self):
        self._names: Dict[str, str] = {}

    def get(self, resume_id: str) -> Optional[str]:
        return self._names.get(resume_id)

    def set(self, resume_id: str, name: str) -> None:
        self._names[resume_id] = name

    def __contains__(self, resume_id: str) -> bool:
        return resume_id in self._names

    def __len__(self) -> int:
        return len(self._names)


class EntityExtractor:

    def __init__(
        self,
        scoring_client=None,
        cache: NameCache = None,
        name_prompt_chars: int = 800,
        country_code: str = "91",
    ):
        self.scoring_client = scoring_client
        self.cache = cache if cache is not None else NameCache()
        self.name_prompt_chars = name_prompt_chars
        self.country_code = country_code

    async def resolve_name(self, text: str, resume_id: str) -> str:
        cached = self.cache.get(resume_id)
        if cached:
            logger.debug(f"Using cached name for {resume_id}")
            return cached

        if self.scoring_client is not None:
            try:
                name = await self.scoring_client.extract_name(text[:self.name_prompt_chars], resume_id)
            except Exception as e:
                logger.warning(f"Name resolution via LLM failed for {resume_id}: {e}")
                name = None
            if name:
                self.cache.set(resume_id, name)
                return name

        name = extract_name_heuristic(text)
        if name:
            logger.debug(f"Heuristic name for {resume_id}: {name}")
            return name

        logger.info(f"No candidate name found in {resume_id}")
        return UNKNOWN_NAME

    async def extract_entities(self, text: str, resume_id: str) -> CandidateEntities:
        return CandidateEntities(
            candidate_name=await self.resolve_name(text, resume_id),
            email=extract_email(text),
            phone=extract_phone(text, self.country_code),
            linkedin=extract_linkedin(text),
        )
