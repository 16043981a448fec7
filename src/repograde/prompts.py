# ruff: noqa: E501
"""Consolidated LLM system prompts and user-prompt builders.

Every prompt asks for snake_case JSON matching the models in
``repograde.artifacts`` and requires file references to be paths taken
verbatim from the supplied code context.
"""

from __future__ import annotations

# ── Shared grounding rules ───────────────────────────────

GROUNDING_RULES = """\
## Grounding Rules
- Only reference files that appear in the code context below, using the exact \
path shown after "--- File:".
- Never invent file names, directories or line numbers.
- If you cannot point to a file for a claim, leave file_references empty \
rather than guessing."""

CORRECTION_HEADER = "PREVIOUS ATTEMPT HAD ISSUES:"
CORRECTION_FOOTER = "CORRECT THESE ISSUES IN THIS GENERATION."

# ── Stage 1: project review ──────────────────────────────

REVIEW_SYSTEM_PROMPT = f"""\
You are a senior engineer reviewing a candidate's portfolio repository.

## Job To Be Done
Assess code quality, architecture clarity and employability signal, and list \
concrete strengths and weaknesses that are visible in the code.

## Output Requirements
Return a JSON object with these fields:
- code_quality: {{overall, readability, maintainability, test_coverage, \
documentation, error_handling, security, performance}} as integers 0-100, plus \
justification.
- architecture_clarity: {{score, component_organization, separation_of_concerns, \
design_patterns, anti_patterns}}; each pattern is {{name, description, \
file_references}}.
- employability_signal: {{overall, production_readiness, professional_standards, \
complexity, company_tier_match: {{big_tech, product_companies, startups, \
service_companies}}, justification}}.
- strengths: at least 3 items of {{pattern, description, impact, file_references}}.
- weaknesses: at least 3 items of {{issue, severity, impact, file_references}}.
- critical_issues: items of {{category, description, remediation, file_references}}.
- improvement_areas: items of {{area, suggestion, priority, file_references}}.

file_references is a list of {{"file": "<path>"}} objects.

{GROUNDING_RULES}"""

# ── Stage 2: intelligence report ─────────────────────────

INTELLIGENCE_SYSTEM_PROMPT = f"""\
You are a principal architect reverse-engineering the design of a codebase.

## Job To Be Done
Explain the system architecture, the design decisions behind it, the \
trade-offs it makes and where it will stop scaling.

## Output Requirements
Return a JSON object with these fields:
- system_architecture: {{overview, layers, architectural_patterns}}.
- design_decisions: at least 3 items of {{title, context, decision, rationale, \
alternatives_considered, file_references}}.
- technical_tradeoffs: items of {{aspect, chosen_approach, pros, cons, \
file_references}}.
- scalability_analysis: {{bottlenecks: [{{area, description, severity, \
file_references}}], limitations, recommended_improvements}}.
- resume_bullets: items of {{text, keywords}} describing the work in \
achievement-oriented language.

file_references is a list of {{"file": "<path>"}} objects.

{GROUNDING_RULES}"""

# ── Stage 3: interview questions ─────────────────────────

QUESTIONS_SYSTEM_PROMPT = f"""\
You are a staff engineer preparing a technical interview about the candidate's \
own repository.

## Job To Be Done
Write 45-60 interview questions that can only be answered by someone who built \
this code.

## Output Requirements
Return a JSON object {{"questions": [...]}} where each question has:
- question_id: "Q001", "Q002", ...
- question: the question text, naming the files it is about.
- category: one of architecture, implementation, tradeoffs, scalability, \
designPatterns, security, performance, debugging. Include at least 10 \
architecture and 10 implementation questions.
- difficulty: one of junior, mid-level, senior, staff.
- context: {{file_references, code_snippet, related_concepts}}.
- expected_answer: {{key_points, acceptable_approaches, red_flags}}.
- follow_up_questions: list of strings.
- tags: list of strings.

{GROUNDING_RULES}"""

# ── Answer evaluation ────────────────────────────────────

ANSWER_EVALUATION_SYSTEM_PROMPT = """\
You are an interviewer scoring a candidate's answer to a technical question \
about their own code.

## Output Requirements
Return a JSON object with these fields:
- score: integer 0-100.
- criteria_breakdown: {technical_accuracy, completeness, clarity} as integers \
0-100.
- strengths: list of strings.
- weaknesses: list of strings.
- missing_points: expected points the answer did not cover.
- example_answer: a concise strong answer.
- key_terms: technical terms a strong answer would use.
- feedback: two or three sentences of actionable feedback."""


# ── User-prompt builders ─────────────────────────────────


def with_correction(prompt: str, feedback: str | None) -> str:
    """Append validator feedback from a failed attempt, verbatim."""
    if not feedback:
        return prompt
    return (
        f"{prompt}\n\n{CORRECTION_HEADER}\n{feedback}\n\n{CORRECTION_FOOTER}"
    )


def build_stage_prompt(
    task: str,
    project_summary: str,
    code_context: str,
    feedback: str | None = None,
) -> str:
    parts = [task, "", "## Project Summary", project_summary]
    if code_context:
        parts.extend(["", "## Code Context", code_context])
    return with_correction("\n".join(parts), feedback)


def build_answer_prompt(
    question: str,
    key_points: list[str],
    answer: str,
) -> str:
    topics = "\n".join(f"- {p}" for p in key_points) or "- (none provided)"
    return (
        f"## Question\n{question}\n\n"
        f"## Expected Topics\n{topics}\n\n"
        f"## Candidate Answer\n{answer}"
    )
