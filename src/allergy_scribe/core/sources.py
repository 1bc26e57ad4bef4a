# ============================================================================
# src/allergy_scribe/core/sources.py
# ============================================================================
"""
Source Aggregator

Merges heterogeneous input fragments (audio transcript, OCR text, document
text, pasted notes) into one ordered corpus for extraction. Each block is
annotated with its provenance so the model can weigh low-confidence OCR
text more skeptically:

    === SOURCE 2 (DOCUMENT) ===
    [File: referral_letter.png]
    [OCR Confidence: 72%]
    <content>

Blocks are separated by a horizontal-rule marker.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


SOURCE_SEPARATOR = "\n\n---\n\n"


def _coerce_confidence(value: Any) -> Optional[float]:
    """Confidence from the wire form; anything non-numeric is a bad source."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"confidence must be a number, got {value!r}")
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"confidence must be a number, got {value!r}")
    if not math.isfinite(confidence) or confidence < 0:
        raise ValueError(f"confidence must be a non-negative number, got {value!r}")
    return confidence


class SourceType(str, Enum):
    """Origin of a source fragment."""
    AUDIO = "audio"          # Transcription provider output
    DOCUMENT = "document"    # OCR or document-text extractor output
    TEXT = "text"            # Typed clinician text
    PASTE = "paste"          # Pasted from another system


@dataclass
class SourceMetadata:
    filename: Optional[str] = None
    # OCR confidence, 0..1 (values above 1 are treated as already-percent)
    confidence: Optional[float] = None
    timestamp: Optional[str] = None
    segments: List[Dict[str, Any]] = field(default_factory=list)

    def confidence_percent(self) -> Optional[int]:
        if self.confidence is None:
            return None
        value = float(self.confidence)
        if value <= 1.0:
            value *= 100.0
        return int(round(value))


@dataclass
class Source:
    """One atomic unit of input with provenance."""
    type: SourceType
    content: str
    metadata: SourceMetadata = field(default_factory=SourceMetadata)

    # ------------------------------------------------------------------
    # Provider adapters
    # ------------------------------------------------------------------
    @classmethod
    def from_transcription(cls, result: Dict[str, Any], timestamp: Optional[str] = None) -> "Source":
        """Build from a transcription result: {text, segments: [{start, end, text}]}."""
        return cls(
            type=SourceType.AUDIO,
            content=result.get("text") or "",
            metadata=SourceMetadata(
                timestamp=timestamp,
                segments=list(result.get("segments") or []),
            ),
        )

    @classmethod
    def from_ocr(cls, result: Dict[str, Any], filename: Optional[str] = None) -> "Source":
        """Build from an OCR result: {text, confidence (0..1), layout?}."""
        return cls(
            type=SourceType.DOCUMENT,
            content=result.get("text") or "",
            metadata=SourceMetadata(
                filename=filename,
                confidence=result.get("confidence"),
            ),
        )

    @classmethod
    def from_document_text(cls, text: str, filename: Optional[str] = None) -> "Source":
        """Build from raw text pulled out of a PDF/DOCX/TXT file."""
        return cls(
            type=SourceType.DOCUMENT,
            content=text or "",
            metadata=SourceMetadata(filename=filename),
        )

    @classmethod
    def from_paste(cls, text: str) -> "Source":
        return cls(type=SourceType.PASTE, content=text or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Source":
        """Build from the wire form {type, content, metadata?}."""
        meta = data.get("metadata") or {}
        return cls(
            type=SourceType(data.get("type", SourceType.TEXT.value)),
            content=data.get("content") or "",
            metadata=SourceMetadata(
                filename=meta.get("filename"),
                confidence=_coerce_confidence(meta.get("confidence")),
                timestamp=meta.get("timestamp"),
                segments=list(meta.get("segments") or []),
            ),
        )

    def render(self, position: int) -> str:
        """Render this source as one corpus block (position is 1-based)."""
        lines = [f"=== SOURCE {position} ({self.type.value.upper()}) ==="]
        if self.metadata.filename:
            lines.append(f"[File: {self.metadata.filename}]")
        percent = self.metadata.confidence_percent()
        if percent is not None:
            lines.append(f"[OCR Confidence: {percent}%]")
        if self.metadata.timestamp:
            lines.append(f"[Timestamp: {self.metadata.timestamp}]")
        lines.append(self.content)
        return "\n".join(lines)


def aggregate(sources: List[Source]) -> str:
    """
    Merge sources into one ordered corpus.

    Pure: the same sources always produce the same corpus. An empty list
    yields an empty corpus; callers reject that before extraction.
    """
    return SOURCE_SEPARATOR.join(
        source.render(position) for position, source in enumerate(sources, start=1)
    )
