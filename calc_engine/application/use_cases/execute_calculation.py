"""Execute a calculation - main orchestration.

parse -> resolve dependencies -> fetch -> evaluate -> shape output. Every
engine error is returned as a failed result; the stored calculation is
only replaced when a run succeeds.
"""

import dataclasses
import time
from dataclasses import dataclass
from datetime import date

import structlog

from calc_engine.application.dto.results import CalculationErrorPayload, CalculationOutput
from calc_engine.application.services.dependencies import collect_indicator_slugs
from calc_engine.application.services.expression_eval import evaluate
from calc_engine.application.services.formula_parser import parse
from calc_engine.domain.entities import Calculation, EvaluationContext
from calc_engine.domain.enums import OutputType, RunState
from calc_engine.domain.errors import (
    ArgumentTypeError,
    CalculationError,
    InsufficientDataError,
    SourceUnavailableError,
    UnknownIndicatorError,
)
from calc_engine.domain.ports import CalculationRepositoryPort, ClockPort, SeriesStorePort
from calc_engine.domain.types import JsonValue, SeriesPoints
from calc_engine.domain.values import RuntimeValue, ScalarValue, SeriesValue
from calc_engine.infrastructure.observability.metrics import (
    points_fetched,
    run_duration_seconds,
    runs_failed,
    runs_started,
    runs_succeeded,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one run."""

    calculation: Calculation
    state: RunState
    value: RuntimeValue | None = None
    as_of: date | None = None
    error: CalculationError | None = None
    failed_state: RunState | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.SUCCEEDED

    @property
    def output_type(self) -> OutputType:
        return self.calculation.output_type

    def to_payload(self, context: EvaluationContext | None = None) -> dict[str, JsonValue]:
        """Render ``{output_type, value}`` or ``{error: {...}}``."""
        context = context or EvaluationContext()
        if self.error is not None:
            return CalculationErrorPayload.from_error(self.error).to_json()
        if self.value is None:
            raise ValueError("Execution result has neither a value nor an error")
        return CalculationOutput.from_value(
            self.output_type, self.value, context.date_format, self.as_of
        ).to_json()


class CalculationRunner:
    """Runs calculations against a series store."""

    def __init__(
        self,
        store: SeriesStorePort,
        clock: ClockPort,
        repository: CalculationRepositoryPort | None = None,
    ) -> None:
        """Initialize runner."""
        self.store = store
        self.clock = clock
        self.repository = repository

    def execute(
        self,
        calculation: Calculation,
        context: EvaluationContext | None = None,
    ) -> ExecutionResult:
        """Execute a calculation and report its result or error."""
        context = context or EvaluationContext()
        log = logger.bind(calculation_id=calculation.id, calculation_slug=calculation.slug)
        runs_started.inc()
        started = time.perf_counter()
        stage = RunState.PARSED

        try:
            log.info("calculation_started", formula=calculation.formula)

            tree = parse(calculation.formula)

            stage = RunState.DEPENDENCIES_RESOLVED
            slugs = collect_indicator_slugs(tree)
            self._check_dependencies(slugs)
            log.info("dependencies_resolved", dependencies=sorted(slugs))

            stage = RunState.DATA_FETCHED
            fetched = self._fetch_all(slugs, context)

            stage = RunState.EVALUATED
            value = evaluate(tree, fetched, context)
            value, as_of = reconcile_output(value, calculation.output_type)

        except CalculationError as e:
            runs_failed.labels(error_kind=e.kind.value).inc()
            log.warning(
                "calculation_failed",
                failed_state=stage.value,
                error_kind=e.kind.value,
                error_message=e.message,
                position=e.position,
                argument_index=e.argument_index,
                function=e.function,
            )
            return ExecutionResult(calculation, RunState.FAILED, error=e, failed_state=stage)

        finally:
            run_duration_seconds.observe(time.perf_counter() - started)

        result = ExecutionResult(calculation, RunState.SUCCEEDED, value=value, as_of=as_of)
        updated = dataclasses.replace(
            calculation,
            dependencies=slugs,
            cached_result=result.to_payload(context),
            last_calculated=self.clock.now(),
        )
        if self.repository is not None and updated.id is not None:
            self.repository.save(updated)

        runs_succeeded.labels(output_type=calculation.output_type.value).inc()
        log.info("calculation_succeeded", value_kind=value.kind.value)
        return dataclasses.replace(result, calculation=updated)

    def _check_dependencies(self, slugs: frozenset[str]) -> None:
        """Fail before any fetch when a slug is unknown or inactive."""
        unknown = [slug for slug in sorted(slugs) if not self._exists(slug)]
        if unknown:
            raise UnknownIndicatorError(unknown)

    def _exists(self, slug: str) -> bool:
        try:
            return self.store.indicator_exists_and_active(slug)
        except (OSError, ValueError, RuntimeError) as e:
            raise SourceUnavailableError(f"Series store failed checking {slug}: {e}") from e

    def _fetch_all(self, slugs: frozenset[str], context: EvaluationContext) -> dict[str, SeriesPoints]:
        """Fetch each distinct slug exactly once."""
        fetched: dict[str, SeriesPoints] = {}
        for slug in sorted(slugs):
            try:
                points = self.store.fetch_series(slug, context.start_date, context.end_date)
            except (OSError, ValueError, RuntimeError) as e:
                raise SourceUnavailableError(f"Series store failed fetching {slug}: {e}") from e

            points_fetched.observe(len(points))
            logger.debug("series_fetched", slug=slug, point_count=len(points))
            fetched[slug] = points
        return fetched


def reconcile_output(value: RuntimeValue, output_type: OutputType) -> tuple[RuntimeValue, date | None]:
    """Check the produced value kind against the declared output type.

    A ``single`` calculation may reduce a series to its most recent value;
    a ``series`` calculation must produce a series.
    """
    if output_type == OutputType.SERIES:
        if not isinstance(value, SeriesValue):
            raise ArgumentTypeError("Calculation output type is 'series' but the formula produces a single value")
        return value, None

    if isinstance(value, ScalarValue):
        return value, None

    last = value.last()
    if last is None:
        raise InsufficientDataError("Formula produced an empty series; no latest value for a single output")
    as_of, latest = last
    return ScalarValue(latest), as_of
