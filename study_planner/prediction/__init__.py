"""
Prediction Module - exam outcome estimates.

Components:
- exam_format: Exam format parsing and format-gap analysis
- simulation: Monte Carlo exam simulator
- grade_predictor: Predicted grade from weighted study signals
"""

from study_planner.prediction.exam_format import (
    FormatAnalysis,
    analyze_exam_format,
    parse_exam_format,
    question_type_weights,
)
from study_planner.prediction.simulation import (
    ImpactTopic,
    SimulationResult,
    simulate_exam_outcome,
)
from study_planner.prediction.grade_predictor import (
    GradeFactor,
    PredictedGrade,
    predict_grade,
)

__all__ = [
    "FormatAnalysis",
    "analyze_exam_format",
    "parse_exam_format",
    "question_type_weights",
    "ImpactTopic",
    "SimulationResult",
    "simulate_exam_outcome",
    "GradeFactor",
    "PredictedGrade",
    "predict_grade",
]
