from typing import Awaitable, Callable, TypedDict

from langgraph.graph import StateGraph, END

from app.models.models import CandidateEntities, ScoreResult, UploadedDocument


# LangGraph state for a single resume/JD pair
class ResumeState(TypedDict, total=False):
    resume: UploadedDocument
    jd_text: str
    resume_text: str
    entities: CandidateEntities
    result: ScoreResult


def build_graph(
    parse: Callable[[UploadedDocument], Awaitable[str]],
    extract: Callable[[str, str], Awaitable[CandidateEntities]],
    score: Callable[[str, str], Awaitable[ScoreResult]],
):
    """Compile parse -> extract -> score for one resume. Errors propagate to the caller."""

    async def node_parse(state: ResumeState):
        return {"resume_text": await parse(state["resume"])}

    async def node_extract(state: ResumeState):
        return {"entities": await extract(state["resume_text"], state["resume"].filename)}

    async def node_score(state: ResumeState):
        return {"result": await score(state["resume_text"], state["jd_text"])}

    g = StateGraph(ResumeState)
    g.add_node("parse_resume", node_parse)
    g.add_node("extract_entities", node_extract)
    g.add_node("score_resume", node_score)
    g.set_entry_point("parse_resume")
    g.add_edge("parse_resume", "extract_entities")
    g.add_edge("extract_entities", "score_resume")
    g.add_edge("score_resume", END)
    return g.compile()
