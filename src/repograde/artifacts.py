"""Pydantic models for the artifacts produced by each pipeline stage.

Every model tolerates partial LLM output (missing lists default to empty)
so that structural defects surface as validator issues with a score, not
as parse failures that burn a correction attempt without feedback.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from repograde.constants import (
    AnswerCategory,
    ConfidenceTier,
    Difficulty,
    QuestionCategory,
)


class FileReference(BaseModel):
    """A file named by generated content, optionally with a line range."""

    file: str
    line_start: int | None = None
    line_end: int | None = None
    snippet: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"file": data}
        return data


def reference_paths(refs: list[FileReference]) -> list[str]:
    return [ref.file for ref in refs]


# ── Project review ───────────────────────────────────────


class CodeQuality(BaseModel):
    overall: int = 0
    readability: int = 0
    maintainability: int = 0
    test_coverage: int = 0
    documentation: int = 0
    error_handling: int = 0
    security: int = 0
    performance: int = 0
    justification: str = ""


class PatternObservation(BaseModel):
    """A design pattern or anti-pattern spotted in the code."""

    name: str
    description: str = ""
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class ArchitectureClarity(BaseModel):
    score: int = 0
    component_organization: str = ""
    separation_of_concerns: str = ""
    design_patterns: list[PatternObservation] = Field(
        default_factory=lambda: list[PatternObservation]()
    )
    anti_patterns: list[PatternObservation] = Field(
        default_factory=lambda: list[PatternObservation]()
    )


class CompanyTierMatch(BaseModel):
    big_tech: int = 0
    product_companies: int = 0
    startups: int = 0
    service_companies: int = 0


class EmployabilitySignal(BaseModel):
    overall: int = 0
    production_readiness: int = 0
    professional_standards: int = 0
    complexity: str = ""
    company_tier_match: CompanyTierMatch = Field(
        default_factory=CompanyTierMatch
    )
    justification: str = ""


class Strength(BaseModel):
    pattern: str
    description: str = ""
    impact: str = ""
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class Weakness(BaseModel):
    issue: str
    severity: str = ""
    impact: str = ""
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class CriticalIssue(BaseModel):
    category: str = ""
    description: str
    remediation: str = ""
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class ImprovementArea(BaseModel):
    area: str
    suggestion: str = ""
    priority: str = ""
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class ProjectReview(BaseModel):
    """Code-quality review of a repository."""

    code_quality: CodeQuality | None = None
    architecture_clarity: ArchitectureClarity | None = None
    employability_signal: EmployabilitySignal | None = None
    strengths: list[Strength] = Field(
        default_factory=lambda: list[Strength]()
    )
    weaknesses: list[Weakness] = Field(
        default_factory=lambda: list[Weakness]()
    )
    critical_issues: list[CriticalIssue] = Field(
        default_factory=lambda: list[CriticalIssue]()
    )
    improvement_areas: list[ImprovementArea] = Field(
        default_factory=lambda: list[ImprovementArea]()
    )


# ── Intelligence report ──────────────────────────────────


class SystemArchitecture(BaseModel):
    overview: str = ""
    layers: list[str] = Field(default_factory=lambda: list[str]())
    architectural_patterns: list[str] = Field(
        default_factory=lambda: list[str]()
    )


class DesignDecision(BaseModel):
    title: str
    context: str = ""
    decision: str = ""
    rationale: str = ""
    alternatives_considered: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class TechnicalTradeoff(BaseModel):
    aspect: str
    chosen_approach: str = ""
    pros: list[str] = Field(default_factory=lambda: list[str]())
    cons: list[str] = Field(default_factory=lambda: list[str]())
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class Bottleneck(BaseModel):
    area: str
    description: str = ""
    severity: str = ""
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )


class ScalabilityAnalysis(BaseModel):
    bottlenecks: list[Bottleneck] = Field(
        default_factory=lambda: list[Bottleneck]()
    )
    limitations: list[str] = Field(default_factory=lambda: list[str]())
    recommended_improvements: list[str] = Field(
        default_factory=lambda: list[str]()
    )


class ResumeBullet(BaseModel):
    text: str
    keywords: list[str] = Field(default_factory=lambda: list[str]())


class IntelligenceReport(BaseModel):
    """Architecture intelligence: decisions, trade-offs, bottlenecks."""

    system_architecture: SystemArchitecture = Field(
        default_factory=SystemArchitecture
    )
    design_decisions: list[DesignDecision] = Field(
        default_factory=lambda: list[DesignDecision]()
    )
    technical_tradeoffs: list[TechnicalTradeoff] = Field(
        default_factory=lambda: list[TechnicalTradeoff]()
    )
    scalability_analysis: ScalabilityAnalysis = Field(
        default_factory=ScalabilityAnalysis
    )
    resume_bullets: list[ResumeBullet] = Field(
        default_factory=lambda: list[ResumeBullet]()
    )


# ── Interview questions ──────────────────────────────────


class QuestionContext(BaseModel):
    file_references: list[FileReference] = Field(
        default_factory=lambda: list[FileReference]()
    )
    code_snippet: str | None = None
    related_concepts: list[str] = Field(
        default_factory=lambda: list[str]()
    )


class ExpectedAnswer(BaseModel):
    key_points: list[str] = Field(default_factory=lambda: list[str]())
    acceptable_approaches: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    red_flags: list[str] = Field(default_factory=lambda: list[str]())


class InterviewQuestion(BaseModel):
    question_id: str
    question: str
    category: QuestionCategory
    difficulty: Difficulty
    context: QuestionContext = Field(default_factory=QuestionContext)
    expected_answer: ExpectedAnswer = Field(default_factory=ExpectedAnswer)
    follow_up_questions: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    tags: list[str] = Field(default_factory=lambda: list[str]())


class InterviewTrack(BaseModel):
    name: str
    description: str = ""
    duration_minutes: int
    question_ids: list[str] = Field(default_factory=lambda: list[str]())


class SelfCorrectionReport(BaseModel):
    iterations: int
    converged: bool
    initial_score: float
    final_score: float
    corrections_feedback: list[str] = Field(
        default_factory=lambda: list[str]()
    )


class QuestionBank(BaseModel):
    """All generated questions, organized into interview tracks."""

    questions: list[InterviewQuestion] = Field(
        default_factory=lambda: list[InterviewQuestion]()
    )
    tracks: list[InterviewTrack] = Field(
        default_factory=lambda: list[InterviewTrack]()
    )
    category_counts: dict[str, int] = Field(
        default_factory=lambda: dict[str, int]()
    )
    difficulty_distribution: dict[str, int] = Field(
        default_factory=lambda: dict[str, int]()
    )
    grounding_confidence: ConfidenceTier = ConfidenceTier.INSUFFICIENT
    self_correction: SelfCorrectionReport | None = None

    def find(self, question_id: str) -> InterviewQuestion | None:
        for question in self.questions:
            if question.question_id == question_id:
                return question
        return None


# ── Answer evaluation ────────────────────────────────────


class CriteriaScores(BaseModel):
    technical_accuracy: int = 0
    completeness: int = 0
    clarity: int = 0


class AnswerEvaluation(BaseModel):
    question_id: str
    answer: str
    overall_score: int
    criteria_scores: CriteriaScores = Field(default_factory=CriteriaScores)
    strengths: list[str] = Field(default_factory=lambda: list[str]())
    weaknesses: list[str] = Field(default_factory=lambda: list[str]())
    missing_points: list[str] = Field(default_factory=lambda: list[str]())
    example_answer: str = ""
    key_terms: list[str] = Field(default_factory=lambda: list[str]())
    feedback: str = ""
    category: AnswerCategory
