# ============================================================================
# src/allergy_scribe/core/pipeline.py
# ============================================================================
"""
Extraction Pipeline

Runs one visit's sources through the core stages:

    Sources -> aggregate -> ExtractionEngine -> SchemaValidator -> SafetyAnalyzer

Single-visit stages are sequential; extraction is the only awaited call.
Pipelines for different visits can be awaited concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .analyzer import AnalysisMetadata, SafetyAnalyzer
from .config import get_config
from .extraction_engine import ExtractionEngine
from .sources import Source, aggregate
from ..utils.exceptions import EmptyCorpusError, ExtractionFailure, SchemaValidationError
from ..utils.logging import log_performance
from ..validators.schema_validator import FieldError, SchemaValidator


logger = logging.getLogger(__name__)


@dataclass
class ExtractionOutcome:
    """Validated record plus everything the review screen needs."""
    record: Dict[str, Any]
    analysis: AnalysisMetadata
    errors: List[FieldError] = field(default_factory=list)
    dropped_paths: List[str] = field(default_factory=list)
    sources_count: int = 0
    attempts: int = 1
    extraction_time: float = 0.0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def metadata(self) -> Dict[str, Any]:
        """analysisMetadata block returned alongside the record."""
        data = self.analysis.to_dict()
        data.update({
            "timestamp": datetime.now().isoformat(),
            "sourcesCount": self.sources_count,
            "attempts": self.attempts,
            "extractedCptCodes": len(self.record.get("cptCodes") or []),
            "extractedIcd10Codes": len(self.record.get("icd10Codes") or []),
            "droppedPaths": list(self.dropped_paths),
        })
        return data


class ExtractionPipeline:
    """
    Sources in, validated and analyzed record out.

    Usage:
        pipeline = ExtractionPipeline()
        outcome = await pipeline.run(sources)
    """

    def __init__(
        self,
        config: Dict[str, Any] = None,
        engine: Optional[ExtractionEngine] = None,
        validator: Optional[SchemaValidator] = None,
        analyzer: Optional[SafetyAnalyzer] = None
    ):
        env_config = get_config()
        self.config = {**env_config, **(config or {})}

        self.engine = engine or ExtractionEngine(self.config)
        self.validator = validator or SchemaValidator()
        self.analyzer = analyzer or SafetyAnalyzer()

        self.low_ocr_threshold = float(self.config.get('low_ocr_confidence_threshold', 0.6))
        self.retry_delay = float(self.config.get('retry_delay', 1.0))

    @log_performance(logger, "extraction_pipeline")
    async def run(
        self,
        sources: List[Source],
        accept_partial: bool = False,
        attempts: int = 1
    ) -> ExtractionOutcome:
        """
        Extract, validate and analyze one visit.

        Args:
            sources: Ordered visit sources
            accept_partial: Return the partially corrected record instead of
                raising when validation finds errors
            attempts: Extraction attempts on ExtractionFailure (1 = no retry)

        Raises:
            EmptyCorpusError: no sources
            ExtractionFailure: every attempt failed
            SchemaValidationError: validation errors and not accept_partial
        """
        if not sources:
            raise EmptyCorpusError("At least one source is required for extraction")

        start = datetime.now()
        corpus = aggregate(sources)
        candidate, used = await self._extract(corpus, max(1, attempts))

        result = self.validator.validate(candidate)
        record = self._flag_low_confidence_sources(result.record, sources)

        if result.errors and not accept_partial:
            raise SchemaValidationError(result.errors, partial_record=record)

        analysis = self.analyzer.analyze(record)
        elapsed = (datetime.now() - start).total_seconds()

        logger.info(
            f"Pipeline finished: {len(sources)} source(s), status={analysis.status.value}, "
            f"errors={len(result.errors)}, red_flags={len(analysis.red_flags)}"
        )

        return ExtractionOutcome(
            record=record,
            analysis=analysis,
            errors=result.errors,
            dropped_paths=result.dropped_paths,
            sources_count=len(sources),
            attempts=used,
            extraction_time=elapsed,
        )

    async def run_with_retries(self, sources: List[Source], attempts: int = 3, **kwargs) -> ExtractionOutcome:
        """run() that re-invokes extraction on ExtractionFailure only."""
        return await self.run(sources, attempts=attempts, **kwargs)

    async def _extract(self, corpus: str, attempts: int):
        last_error: Optional[ExtractionFailure] = None
        for attempt in range(1, attempts + 1):
            try:
                return await self.engine.extract(corpus), attempt
            except ExtractionFailure as e:
                last_error = e
                logger.warning(f"Extraction attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts and self.retry_delay > 0:
                    await asyncio.sleep(self.retry_delay * attempt)
        raise last_error

    def _flag_low_confidence_sources(self, record: Dict[str, Any], sources: List[Source]) -> Dict[str, Any]:
        """Add a sourceQualityFlags entry per OCR source below the threshold."""
        threshold = self.low_ocr_threshold * 100.0
        flags = list(record.get("sourceQualityFlags") or [])

        for position, source in enumerate(sources, start=1):
            percent = source.metadata.confidence_percent()
            if percent is None or percent >= threshold:
                continue
            name = f" ({source.metadata.filename})" if source.metadata.filename else ""
            flag = f"Source {position}{name} has low OCR confidence ({percent}%)"
            if flag not in flags:
                flags.append(flag)

        if flags == record.get("sourceQualityFlags"):
            return record
        return {**record, "sourceQualityFlags": flags}
