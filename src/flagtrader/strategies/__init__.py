"""
Flagtrader Strategies Package

Flag pattern recognition and the trade decision pipeline:
- Single-timeframe flag detection (poles, consolidations, trendlines)
- Multi-timeframe confirmation
- Decision policy with news and calendar context
- End-to-end analysis orchestration
"""

from .analysis_engine import AnalysisEngine, AnalysisRequest, AnalysisResult
from .decision_engine import DecisionConfig, DecisionEngine
from .timeframe_analyzer import MultiTimeframeConfirmer

__all__ = [
    "AnalysisEngine",
    "AnalysisRequest",
    "AnalysisResult",
    "DecisionConfig",
    "DecisionEngine",
    "MultiTimeframeConfirmer",
]
