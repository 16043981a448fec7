"""Generation stages: review, intelligence, questions, answer evaluation."""

from repograde.stages.answers import evaluate_answer
from repograde.stages.base import StageInput, StageOutput
from repograde.stages.intelligence import run_intelligence_stage
from repograde.stages.questions import run_questions_stage
from repograde.stages.review import run_review_stage

__all__ = [
    "StageInput",
    "StageOutput",
    "evaluate_answer",
    "run_intelligence_stage",
    "run_questions_stage",
    "run_review_stage",
]
