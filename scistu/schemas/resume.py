from __future__ import annotations

from pydantic import BaseModel, Field


class ResumeReportRequest(BaseModel):
    resume_text: str = Field(default="", max_length=50000)


class ResumeSections(BaseModel):
    contact: bool
    education: bool
    experience: bool
    skills: bool


class ResumeReport(BaseModel):
    word_count: int
    sections: ResumeSections
    detected_skills: list[str]
    recommendations: list[str]
    overall_score: float = Field(ge=0.0, le=100.0)
    report: str


class ResumeAnalysis(BaseModel):
    score: int = Field(ge=0, le=100)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    ats_optimization: list[str] = Field(default_factory=list)
    keyword_analysis: dict[str, float] = Field(default_factory=dict)
    sentiment: str = ""
