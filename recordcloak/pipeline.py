"""Concurrent masking pipeline for whole record files."""

import contextvars
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, Union, cast

from .core.config import GlobalConfig, LineErrorPolicy
from .core.error_handling import ErrorCollector
from .core.exceptions import (
    ConfigurationError,
    FieldRangeError,
    LineProcessingError,
    RecordCloakError,
)
from .core.rule_loader import RuleLoader
from .core.rules import RuleTable
from .io.records import format_records, read_records, write_records
from .masking.transformer import LineResult, LineStatus, LineTransformer
from .observability.logging import run_context

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Lifecycle of a pipeline run."""

    IDLE = "idle"
    LOADING = "loading"
    RUNNING = "running"
    COLLECTING = "collecting"
    WRITING = "writing"
    DRY_RUN_SKIP = "dry_run_skip"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Summary of a pipeline run."""

    lines_processed: int
    lines_masked: int
    lines_unmatched: int
    lines_short: int
    lines_failed: int
    fields_skipped: int
    dry_run: bool
    output_written: bool
    duration_ms: float
    state: PipelineState = PipelineState.DONE
    output_path: Optional[Path] = None
    run_id: str = ""
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def lines_passed_through(self) -> int:
        """Lines emitted unchanged (no rules, too short, or failed)."""
        return self.lines_unmatched + self.lines_short + self.lines_failed

    @property
    def has_line_errors(self) -> bool:
        return self.lines_failed > 0 or self.fields_skipped > 0

    @property
    def throughput_lines_per_second(self) -> float:
        if self.duration_ms == 0:
            return 0.0
        return self.lines_processed / (self.duration_ms / 1000)

    def summary(self) -> dict[str, Any]:
        """Counts reported at the end of a run."""
        return {
            "lines_processed": self.lines_processed,
            "lines_masked": self.lines_masked,
            "lines_unmatched": self.lines_unmatched,
            "lines_short": self.lines_short,
            "lines_failed": self.lines_failed,
            "fields_skipped": self.fields_skipped,
            "dry_run": self.dry_run,
            "output_written": self.output_written,
            "output_path": str(self.output_path) if self.output_path else None,
            "duration_ms": round(self.duration_ms, 1),
        }


class ProgressCallback(Protocol):
    """Protocol for pipeline progress callbacks."""

    def on_run_start(self, total_lines: int) -> None:
        """Called when workers are about to start."""
        ...

    def on_chunk_complete(self, completed_lines: int, total_lines: int) -> None:
        """Called on the coordinating thread after each chunk finishes."""
        ...

    def on_run_complete(self, result: PipelineResult) -> None:
        """Called once the run has finished."""
        ...


class LoggingProgressCallback:
    """Default progress callback that logs at most once per interval."""

    def __init__(self, interval_seconds: float = 1.0):
        self.interval_seconds = interval_seconds
        self._start_time = 0.0
        self._last_update_time = 0.0

    def on_run_start(self, total_lines: int) -> None:
        self._start_time = time.time()
        self._last_update_time = self._start_time
        logger.info(f"Masking {total_lines} lines")

    def on_chunk_complete(self, completed_lines: int, total_lines: int) -> None:
        current_time = time.time()
        if current_time - self._last_update_time >= self.interval_seconds:
            elapsed = current_time - self._start_time
            rate = completed_lines / elapsed if elapsed > 0 else 0.0
            logger.info(
                f"Processed {completed_lines}/{total_lines} lines ({rate:.0f} lines/sec)"
            )
            self._last_update_time = current_time

    def on_run_complete(self, result: PipelineResult) -> None:
        logger.info(
            f"Run complete: {result.lines_processed} lines processed, "
            f"{result.lines_masked} masked, {result.lines_failed} failed "
            f"in {result.duration_ms / 1000:.2f}s"
        )
        if result.has_line_errors:
            logger.warning(
                f"{result.lines_failed} lines passed through after errors, "
                f"{result.fields_skipped} fields skipped"
            )


class _FirstFailure:
    """Lowest line index that has failed under the abort policy.

    Workers stop only at indices above it, so a chunk covering earlier
    lines still reaches its own failure and the lowest one is reported.
    """

    def __init__(self, total: int) -> None:
        self.index = total
        self._lock = threading.Lock()

    def record(self, index: int) -> None:
        with self._lock:
            if index < self.index:
                self.index = index


class MaskingPipeline:
    """
    Reads records, masks them on a bounded thread pool and writes them back.

    Lines are split into contiguous chunks; each worker writes its results
    into a pre-sized list at the lines' original positions, so output order
    always equals input order regardless of which chunk finishes first.
    Nothing is written until every chunk has completed.
    """

    def __init__(
        self,
        config: GlobalConfig,
        rules: Union[RuleTable, str, Path],
        progress_callback: Optional[ProgressCallback] = None,
        error_collector: Optional[ErrorCollector] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Run configuration, shared read-only by all workers
            rules: A RuleTable, or the path of a rules file loaded at run start
            progress_callback: Progress reporting hooks (None for logging)
            error_collector: Collector for per-line errors (None to create one)
        """
        self.config = config
        self.rules = rules
        self.progress_callback = progress_callback or LoggingProgressCallback()
        self.error_collector = error_collector or ErrorCollector()
        self.state = PipelineState.IDLE
        self.run_id = uuid.uuid4().hex[:12]

    def _set_state(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state {self.state.value} -> {state.value}")
        self.state = state

    def _load_rules(self) -> RuleTable:
        if isinstance(self.rules, RuleTable):
            return self.rules
        table = RuleLoader().load(self.rules)
        self.rules = table
        return table

    def run(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
    ) -> PipelineResult:
        """
        Mask ``input_path`` and write the result to ``output_path``.

        Raises:
            RulesError: If the rules cannot be loaded
            InputError: If the input cannot be read
            ConfigurationError: If no output path is given outside dry-run
            LineProcessingError: If the abort policy is hit
            OutputError: If the output cannot be written
        """
        with run_context(self.run_id):
            start_time = time.perf_counter()
            self._set_state(PipelineState.LOADING)
            logger.info(f"Starting run with {self.config!r}")

            try:
                if not self.config.dry_run and output_path is None:
                    raise ConfigurationError(
                        "An output path is required unless dry-run is enabled",
                        setting="output_path",
                    )
                table = self._load_rules()
                batch = read_records(input_path, self.config)

                lines, counts = self._process(batch.lines, table)

                written = False
                if self.config.dry_run:
                    self._set_state(PipelineState.DRY_RUN_SKIP)
                    logger.info("Dry run: output not written")
                else:
                    self._set_state(PipelineState.WRITING)
                    content = format_records(lines, batch, self.config)
                    write_records(output_path, content, self.config.encoding)
                    written = True
            except RecordCloakError:
                self._set_state(PipelineState.FAILED)
                raise

            self._set_state(PipelineState.DONE)
            result = self._build_result(
                counts,
                start_time,
                output_written=written,
                output_path=Path(output_path) if written else None,
            )
            self.progress_callback.on_run_complete(result)
            return result

    def process_lines(self, lines: list[str]) -> tuple[list[str], PipelineResult]:
        """Mask an in-memory list of lines without touching the filesystem."""
        with run_context(self.run_id):
            start_time = time.perf_counter()
            self._set_state(PipelineState.LOADING)
            try:
                table = self._load_rules()
                masked, counts = self._process(lines, table)
            except RecordCloakError:
                self._set_state(PipelineState.FAILED)
                raise
            self._set_state(PipelineState.DONE)
            result = self._build_result(counts, start_time, output_written=False)
            self.progress_callback.on_run_complete(result)
            return masked, result

    def _process(
        self, lines: list[str], table: RuleTable
    ) -> tuple[list[str], dict[str, int]]:
        """Transform ``lines`` on the worker pool; returns lines in input order."""
        self._set_state(PipelineState.RUNNING)
        self.error_collector.clear()
        total = len(lines)
        results: list[Optional[LineResult]] = [None] * total
        transformer = LineTransformer(table, self.config)
        cancel = threading.Event()
        first_failure = _FirstFailure(total)

        def work(start: int, end: int) -> int:
            for index in range(start, end):
                if cancel.is_set() or index > first_failure.index:
                    return index - start
                results[index] = self._transform_one(
                    transformer, lines[index], index, first_failure
                )
            return end - start

        chunk_size = self.config.chunk_size
        chunks = [(start, min(start + chunk_size, total)) for start in range(0, total, chunk_size)]
        self.progress_callback.on_run_start(total)

        abort_errors: list[LineProcessingError] = []
        if chunks:
            workers = min(self.config.max_workers, len(chunks))
            completed = 0
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="recordcloak") as executor:
                futures = [
                    executor.submit(contextvars.copy_context().run, work, start, end)
                    for start, end in chunks
                ]
                for future in as_completed(futures):
                    try:
                        completed += future.result()
                    except LineProcessingError as e:
                        abort_errors.append(e)
                        continue
                    except Exception:
                        cancel.set()
                        raise
                    self.progress_callback.on_chunk_complete(completed, total)

        self._set_state(PipelineState.COLLECTING)
        if abort_errors:
            first = min(abort_errors, key=lambda e: e.line_number or 0)
            logger.error(f"Run aborted: {first.message}")
            raise first

        counts = {
            "processed": total,
            "masked": 0,
            "unmatched": 0,
            "short": 0,
            "failed": 0,
            "skipped": 0,
        }
        output: list[str] = []
        # every slot is filled once the barrier is passed without abort
        for result in cast(list[LineResult], results):
            output.append(result.text)
            counts[self._count_key(result.status)] += 1
            counts["skipped"] += result.skipped_fields

        return output, counts

    def _transform_one(
        self,
        transformer: LineTransformer,
        line: str,
        index: int,
        first_failure: _FirstFailure,
    ) -> LineResult:
        line_number = index + 1
        try:
            result = transformer.transform_line(line)
        except FieldRangeError as e:
            if self.config.on_range_error is LineErrorPolicy.ABORT:
                first_failure.record(index)
                raise LineProcessingError(
                    f"Line {line_number}: {e.message}",
                    line_number=line_number,
                    context=dict(e.context),
                ) from e
            self.error_collector.record_error(e, line_number=line_number, context=dict(e.context))
            return LineResult(text=line, status=LineStatus.FAILED, errors=(e,))

        for error in result.errors:
            self.error_collector.record_error(
                error, line_number=line_number, context=dict(error.context)
            )
        return result

    @staticmethod
    def _count_key(status: LineStatus) -> str:
        return {
            LineStatus.MASKED: "masked",
            LineStatus.UNMATCHED: "unmatched",
            LineStatus.SHORT: "short",
            LineStatus.FAILED: "failed",
        }[status]

    def _build_result(
        self,
        counts: dict[str, int],
        start_time: float,
        output_written: bool,
        output_path: Optional[Path] = None,
    ) -> PipelineResult:
        return PipelineResult(
            lines_processed=counts["processed"],
            lines_masked=counts["masked"],
            lines_unmatched=counts["unmatched"],
            lines_short=counts["short"],
            lines_failed=counts["failed"],
            fields_skipped=counts["skipped"],
            dry_run=self.config.dry_run,
            output_written=output_written,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            state=self.state,
            output_path=output_path,
            run_id=self.run_id,
            errors=[record.to_dict() for record in self.error_collector.sorted_errors()],
        )


def mask_file(
    input_path: Union[str, Path],
    output_path: Optional[Union[str, Path]],
    rules: Union[RuleTable, str, Path],
    config: Optional[GlobalConfig] = None,
) -> PipelineResult:
    """Mask one file with a default-configured pipeline."""
    pipeline = MaskingPipeline(config or GlobalConfig(), rules)
    return pipeline.run(input_path, output_path)
