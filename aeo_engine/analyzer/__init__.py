"""
Analysis Engine

- ClaudeClient: text-completion provider backed by the Anthropic API
- AnalysisPipeline: subject vs competitor crawl, scoring and aggregation
- RunLauncher: run lifecycle from submission to a terminal state
"""

from .client import ClaudeClient, TokenUsage, AnalysisResponse
from .pipeline import AnalysisPipeline, AnalysisResult, build_insights
from .launcher import RunLauncher

__all__ = [
    # Client
    "ClaudeClient",
    "TokenUsage",
    "AnalysisResponse",
    # Pipeline
    "AnalysisPipeline",
    "AnalysisResult",
    "build_insights",
    # Runs
    "RunLauncher",
]
