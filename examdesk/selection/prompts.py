"""Prompt builders for the selection and enrichment oracle calls."""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

from examdesk.ingestion.article_types import Candidate
from examdesk.ingestion.dates import iso_z


CATEGORY_DESCRIPTIONS: Dict[str, str] = {
    "cabinet-approvals": "Decisions and approvals by the Union Cabinet of India",
    "government-schemes": "Government welfare schemes, yojanas, and missions launched or modified",
    "launches-inaugurations": "Projects, infrastructure, and initiatives inaugurated or launched",
    "rbi-news": "RBI policy decisions, notifications, interest rates, and banking regulations",
    "sebi-news": "SEBI regulations, market policies, and securities-related decisions",
    "defence-exercises": "Military exercises and drills conducted by Indian armed forces",
    "defence-news": "Defence policy, armed forces news, and security matters",
    "space": "ISRO missions, satellite launches, and space technology",
    "rankings": "India's position in global indices and rankings",
    "national-awards": "Padma awards, Bharat Ratna, and national honors",
    "summits": "International summits like G20, BRICS, SCO attended by India",
}


def category_description(category: str) -> str:
    return CATEGORY_DESCRIPTIONS.get(category) or f"News items related to {category}"


def candidate_listing(candidates: Sequence[Candidate]) -> str:
    """`[i] shortid | title | source | date`, one line per candidate."""
    lines = []
    for i, c in enumerate(candidates):
        date = iso_z(c.published_at)[:10] if c.published_at else "unknown"
        lines.append(f"[{i}] {c.id[:8]} | {c.title[:80]} | {c.source} | {date}")
    return "\n".join(lines)


def selection_prompts(category: str, candidates: Sequence[Candidate], selection_size: int) -> Tuple[str, str]:
    system = (
        "You are a news curator for Indian competitive exams (UPSC, SSC, Banking).\n"
        f'Select the {selection_size} most exam-relevant articles for the category: "{category}".\n'
        f"Category definition: {category_description(category)}\n\n"
        "IMPORTANT RULES:\n"
        "1. Return ONLY a JSON array of candidate indices (0-based)\n"
        "2. Prefer official government sources (PIB, RBI, SEBI, PRS)\n"
        "3. Prefer recent news with clear exam relevance\n"
        "4. Avoid duplicates or similar articles\n"
        "5. Focus on facts, policies, appointments, not opinions\n"
        "6. NO explanation, NO markdown, ONLY the JSON array"
    )
    user = (
        f"Select top {selection_size} from these {len(candidates)} candidates:\n\n"
        f"{candidate_listing(candidates)}\n\n"
        "Respond with ONLY a JSON array like: [0, 5, 12, ...]"
    )
    return system, user


ENRICH_SYSTEM_PROMPT = """You are an expert at creating exam-focused summaries for Indian competitive exams (UPSC, SSC, Banking, State PSCs).

For each news item, provide:
1. A concise 2-3 line summary focused on what's exam-relevant
2. 3-5 key exam pointers (facts that could appear in MCQs)

Output ONLY valid JSON in this exact format:
{
  "summary": "2-3 line exam-focused summary",
  "exam_points": ["Point 1", "Point 2", "Point 3"]
}"""


def enrichment_prompts(candidate: Candidate) -> Tuple[str, str]:
    date = iso_z(candidate.published_at) if candidate.published_at else "Unknown"
    user = (
        "News Item:\n"
        f"Title: {candidate.title}\n"
        f"Source: {candidate.source}\n"
        f"Date: {date}\n"
        f"Snippet: {candidate.snippet or 'No additional details'}\n\n"
        "Create an exam-focused summary and key points for this news item."
    )
    return ENRICH_SYSTEM_PROMPT, user
