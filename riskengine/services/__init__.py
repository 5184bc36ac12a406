from riskengine.services.cardiovascular import CardiovascularScorer
from riskengine.services.compound_risk import CompoundRiskAnalyzer
from riskengine.services.diabetes import DiabetesScorer
from riskengine.services.emergency_detection import EmergencyDetector, default_rules
from riskengine.services.escalation import EscalationOrchestrator
from riskengine.services.mental_health import MentalHealthScorer, stratify_suicide_risk
from riskengine.services.pipeline import AssessmentRequest, AssessmentService, assess
from riskengine.services.respiratory import RespiratoryScorer
from riskengine.services.result import Result
from riskengine.services.scoring import DomainScorer, score_safely
from riskengine.services.temporal_tracking import TemporalRiskTracker

__all__ = [
    "AssessmentRequest",
    "AssessmentService",
    "CardiovascularScorer",
    "CompoundRiskAnalyzer",
    "DiabetesScorer",
    "DomainScorer",
    "EmergencyDetector",
    "EscalationOrchestrator",
    "MentalHealthScorer",
    "RespiratoryScorer",
    "Result",
    "TemporalRiskTracker",
    "assess",
    "default_rules",
    "score_safely",
    "stratify_suicide_risk",
]
