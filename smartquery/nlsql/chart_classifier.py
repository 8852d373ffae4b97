"""
Chart Type Detection Module
Maps a question to the visualization that suits it best
"""
import re
from typing import Sequence, Tuple

from .config import PipelineConfig, pipeline_config
from .schemas import ChartType


def _compile(keywords: Sequence[str]) -> re.Pattern:
    return re.compile(r"\b(" + "|".join(re.escape(keyword) for keyword in keywords) + r")\b")


class ChartTypeClassifier:
    """Keyword-driven chart type detection.

    Rules are checked in order: temporal terms give ``line``, distribution terms
    give ``pie``, ranking or comparison terms give ``bar``. Everything else,
    listings included, is shown as a ``table``.
    """

    DEFAULT_CHART: ChartType = "table"

    def __init__(self, config: PipelineConfig = pipeline_config):
        self.config = config
        self._rules: Tuple[Tuple[ChartType, re.Pattern], ...] = (
            ("line", _compile(config.temporal_keywords)),
            # "category ... breakdown" style phrasing counts as a distribution
            ("pie", re.compile(_compile(config.distribution_keywords).pattern + r"|\bcategory\b.*\bbreakdown\b")),
            ("bar", _compile(config.ranking_keywords)),
            ("table", _compile(config.listing_keywords)),
        )

    def classify(self, question: str) -> ChartType:
        lower_question = (question or "").lower()
        for chart_type, pattern in self._rules:
            if pattern.search(lower_question):
                return chart_type
        return self.DEFAULT_CHART
