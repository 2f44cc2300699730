from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from scistu.ai.registry import get_model
from scistu.ai.types import ChatMessage, SamplingParams
from scistu.core.config import settings
from scistu.parsing.extract import count_words
from scistu.schemas.resume import ResumeAnalysis, ResumeReport, ResumeSections

logger = logging.getLogger(__name__)

SKILLS = (
    "JavaScript",
    "React",
    "Node.js",
    "Python",
    "Java",
    "SQL",
    "Git",
    "AWS",
    "HTML/CSS",
    "TypeScript",
)

_SECTION_PATTERNS = {
    "contact": re.compile(r"(email|phone|contact)", re.IGNORECASE),
    "education": re.compile(r"(education|degree|school)", re.IGNORECASE),
    "experience": re.compile(r"(experience|work|job)", re.IGNORECASE),
    "skills": re.compile(r"(skills|technical|programming)", re.IGNORECASE),
}

_SECTION_LABELS = {
    "contact": ("Contact Information", "Missing Contact Info"),
    "education": ("Education", "Missing Education Section"),
    "experience": ("Work Experience", "Missing Experience Section"),
    "skills": ("Skills Section", "Missing Skills Section"),
}

ANALYSIS_PARAMS = SamplingParams(temperature=0.2, max_tokens=2000)


class ResumeAnalysisError(RuntimeError):
    pass


def detect_skills(text: str) -> list[str]:
    # Substring match: "Java" also matches "JavaScript".
    return [skill for skill in SKILLS if re.search(skill, text, flags=re.IGNORECASE)]


def format_score(score: float) -> str:
    score = float(score)
    return str(int(score)) if score.is_integer() else repr(score)


def build_resume_report(text: str) -> ResumeReport:
    word_count = count_words(text)
    sections = ResumeSections(
        **{name: bool(pattern.search(text)) for name, pattern in _SECTION_PATTERNS.items()}
    )
    skills = detect_skills(text)

    recommendations = [
        "Consider adding more details" if word_count < 300 else "Good length",
        "Add contact information" if not sections.contact else "Contact info looks good",
        "Highlight more technical skills" if len(skills) < 3 else "Good technical skills coverage",
        "Use more action verbs (developed, implemented, optimized)",
        'Quantify achievements where possible (e.g., "Increased performance by 30%")',
    ]
    overall_score = min(100.0, 70 + len(skills) * 3 + word_count / 10)

    section_lines = []
    for name, (found, missing) in _SECTION_LABELS.items():
        present = getattr(sections, name)
        section_lines.append(f"  {'✓ ' + found if present else '⚠ ' + missing}")
    skill_lines = (
        "\n".join(f"  • {skill}" for skill in skills)
        if skills
        else "  No specific technical skills detected"
    )
    recommendation_lines = "\n".join(
        f"{index}. {item}" for index, item in enumerate(recommendations, start=1)
    )
    report = (
        "📄 Resume Analysis Report\n"
        "-------------------------\n\n"
        "🔍 Basic Metrics:\n"
        f"- Word Count: {word_count} words\n"
        "- Sections Detected:\n"
        + "\n".join(section_lines)
        + "\n\n💻 Technical Skills Found:\n"
        + skill_lines
        + "\n\n⚡ Recommendations:\n"
        + recommendation_lines
        + f"\n\n📈 Overall Score: {format_score(overall_score)}/100"
    )

    return ResumeReport(
        word_count=word_count,
        sections=sections,
        detected_skills=skills,
        recommendations=recommendations,
        overall_score=overall_score,
        report=report,
    )


def build_analysis_prompt(job_description: str) -> str:
    job_match = job_description.strip() or "General best practices"
    return (
        "Analyze this resume according to these criteria:\n"
        "1. ATS Optimization: Check for proper formatting and keywords\n"
        f"2. Job Match: {job_match}\n"
        "3. Strength Identification: Technical skills, achievements\n"
        "4. Improvement Areas: Weak verbs, generic terms\n"
        "5. Keyword Analysis: Frequency and relevance\n"
        "6. Sentiment: Confidence and professionalism\n\n"
        "Respond in JSON format with these keys:\n"
        "- score (0-100)\n"
        "- strengths (array)\n"
        "- improvements (array)\n"
        "- ats_optimization (array)\n"
        "- keyword_analysis (object mapping keyword to frequency)\n"
        "- sentiment (string)\n"
        "Return only the JSON object."
    )


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, flags=re.DOTALL | re.IGNORECASE)
    if fenced:
        return fenced.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_analysis(raw: str) -> ResumeAnalysis:
    try:
        payload: Any = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise ResumeAnalysisError("Model response was not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise ResumeAnalysisError("Model response was not a JSON object.")

    # Older prompts asked for camelCase keys; accept both.
    if "atsOptimization" in payload and "ats_optimization" not in payload:
        payload["ats_optimization"] = payload.pop("atsOptimization")
    if "keywordAnalysis" in payload and "keyword_analysis" not in payload:
        payload["keyword_analysis"] = payload.pop("keywordAnalysis")
    keywords = payload.get("keyword_analysis")
    if isinstance(keywords, dict):
        payload["keyword_analysis"] = {
            str(key): value for key, value in keywords.items() if isinstance(value, (int, float))
        }
    if isinstance(payload.get("score"), (int, float)):
        payload["score"] = max(0, min(100, round(payload["score"])))

    try:
        return ResumeAnalysis.model_validate(payload)
    except ValidationError as exc:
        raise ResumeAnalysisError(f"Model response did not match the analysis schema: {exc}") from exc


async def analyze_resume(text: str, job_description: str = "", *, model: str | None = None) -> ResumeAnalysis:
    ai = get_model((model or "").strip() or settings.resume_analysis_model)
    messages = [
        ChatMessage(role="system", content=build_analysis_prompt(job_description)),
        ChatMessage(role="user", content=text),
    ]
    try:
        raw = await ai.complete(messages, ANALYSIS_PARAMS)
    except Exception as exc:
        raise ResumeAnalysisError(str(exc)) from exc
    return parse_analysis(raw)
