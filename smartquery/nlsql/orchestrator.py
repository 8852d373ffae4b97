"""
Question-to-SQL Orchestration Module
Drives one question through prompt, model, parsing, validation and fallback
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from smartquery.core.log import timeit

from .chart_classifier import ChartTypeClassifier
from .config import PipelineConfig, llm_config, pipeline_config
from .errors import ModelUnavailableError, ParseError, SQLValidationError
from .fallback import FallbackQueryGenerator
from .llm_providers import LLMProvider
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser
from .schemas import CHART_TYPES, ParsedResponse, SmartQueryResult, TableSchema, table_names
from .sql_validator import SQLValidator

logger = logging.getLogger(__name__)


class QueryState(str, Enum):
    BUILDING_PROMPT = "BUILDING_PROMPT"
    AWAITING_MODEL = "AWAITING_MODEL"
    PARSING = "PARSING"
    VALIDATING = "VALIDATING"
    SUCCEEDED = "SUCCEEDED"
    FALLING_BACK = "FALLING_BACK"
    DONE = "DONE"


@dataclass
class QueryRun:
    """Outcome of one orchestrator run, with the path it took."""

    result: SmartQueryResult
    states: List[QueryState] = field(default_factory=list)
    fallback_reason: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.fallback_reason is not None


class QueryOrchestrator:
    """State machine for a single question.

    The model is called exactly once. Any model-path failure (transport,
    timeout, unparseable reply, rejected SQL) routes to the deterministic
    fallback generator; only ``NoFallbackAvailableError`` escapes.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider],
        config: PipelineConfig = pipeline_config,
        timeout_seconds: Optional[float] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
        validator: Optional[SQLValidator] = None,
        fallback: Optional[FallbackQueryGenerator] = None,
        classifier: Optional[ChartTypeClassifier] = None,
    ):
        self.provider = provider
        self.config = config
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else llm_config.timeout_seconds
        )
        self.prompt_builder = prompt_builder or PromptBuilder(config)
        self.parser = parser or ResponseParser()
        self.validator = validator or SQLValidator(config)
        self.fallback = fallback or FallbackQueryGenerator(self.validator)
        self.classifier = classifier or ChartTypeClassifier(config)

    async def run(self, question: str, schemas: Sequence[TableSchema]) -> QueryRun:
        """
        Turn ``question`` into a validated SmartQueryResult

        Raises:
            NoFallbackAvailableError: The fallback generator had nothing to offer
        """
        states: List[QueryState] = []

        def enter(state: QueryState) -> None:
            states.append(state)
            logger.debug("Query state -> %s", state.value)

        enter(QueryState.BUILDING_PROMPT)
        prompt = self.prompt_builder.build(question, schemas)

        enter(QueryState.AWAITING_MODEL)
        try:
            content = await self._call_model(prompt)
        except ModelUnavailableError as exc:
            return self._fall_back(question, schemas, states, enter, exc.message)
        except Exception as exc:
            logger.exception("Model provider raised an unexpected error")
            reason = f"Model provider failed: {exc.__class__.__name__}: {exc}"
            return self._fall_back(question, schemas, states, enter, reason)

        enter(QueryState.PARSING)
        parsed = self.parser.parse(content)
        if isinstance(parsed, ParseError):
            return self._fall_back(question, schemas, states, enter, parsed.message)

        enter(QueryState.VALIDATING)
        try:
            sql = self.validator.validate(parsed.sql_query or "")
        except SQLValidationError as exc:
            logger.warning("Model SQL rejected (%s): %s", exc.reason, exc.message)
            return self._fall_back(question, schemas, states, enter, exc.message)

        enter(QueryState.SUCCEEDED)
        result = self._model_result(question, schemas, parsed, sql)
        enter(QueryState.DONE)
        return QueryRun(result=result, states=states)

    async def _call_model(self, prompt: str) -> str:
        if self.provider is None:
            raise ModelUnavailableError("No language model provider is configured")

        with timeit("Model completion", logger=logger):
            try:
                completion = await asyncio.wait_for(
                    self.provider.complete(prompt), timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError as exc:
                raise ModelUnavailableError(
                    f"Model did not answer within {self.timeout_seconds:g}s"
                ) from exc

        logger.info(
            "Model reply received from %s/%s (%d chars)",
            completion.provider,
            completion.model,
            len(completion.content or ""),
        )
        return completion.content

    def _model_result(
        self,
        question: str,
        schemas: Sequence[TableSchema],
        parsed: ParsedResponse,
        sql: str,
    ) -> SmartQueryResult:
        chart_type = (
            parsed.chart_type
            if parsed.chart_type in CHART_TYPES
            else self.classifier.classify(question)
        )
        available = ", ".join(table_names(schemas))

        if parsed.recovered:
            message = (
                f'I\'ve analyzed your question "{question}" and generated a query'
                " based on your available data."
            )
            insights = (
                f"Analysis completed for: {question}",
                f"Using available tables: {available}",
            )
        else:
            message = (
                parsed.response_message
                or f'Here\'s the analysis for your question: "{question}"'
            )
            insights = parsed.insights or (
                f"Analysis completed for: {question}",
                f"Tables analyzed: {available}",
            )

        return SmartQueryResult(
            sql_query=sql,
            chart_type=chart_type,
            response_message=message,
            insights=tuple(insights)[: self.config.max_insights],
            source="model",
        )

    def _fall_back(self, question, schemas, states, enter, reason: str) -> QueryRun:
        enter(QueryState.FALLING_BACK)
        logger.warning("Falling back to template query: %s", reason)

        fallback_query = self.fallback.generate(question, schemas)
        result = SmartQueryResult(
            sql_query=fallback_query.sql,
            chart_type=self.classifier.classify(question),
            response_message=(
                f'I\'ve generated an analysis for your question: "{question}".'
                " The results should help provide the insights you're looking for."
            ),
            insights=(
                "Fallback query generated",
                f"Question analyzed: {question}",
                "Available data sources used",
            ),
            source="fallback",
        )
        enter(QueryState.DONE)
        return QueryRun(result=result, states=states, fallback_reason=reason)
