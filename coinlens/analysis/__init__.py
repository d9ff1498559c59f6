from .models import (
    CurrentSnapshot,
    IndicatorSet,
    PatternMatch,
    PricePoint,
    Recommendation,
    Signal,
    SupportResistanceLevel,
)
from .patterns import detect_patterns, detect_support_resistance
from .scoring import AdvancedScorer, SimpleScorer, get_scorer, score_advanced, score_simple
from .synthetic import synthesize_history
from .technical import TechnicalAnalyzer, compute_indicators
