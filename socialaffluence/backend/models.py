"""
backend/models.py

Shared dataclasses for the ingestion side of the pipeline.
The detection snapshot is the one contract every Detection Source
(REST, WebSocket, simulator) must produce before the engine sees it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Classes the dashboard offers when building alert rules.
DETECTION_CLASSES: tuple[str, ...] = (
    "person",
    "car",
    "bus",
    "truck",
    "bicycle",
    "motorcycle",
    "cat",
    "dog",
)


@dataclass(slots=True)
class DetectionSnapshot:
    """Point-in-time observation of per-class detection counts."""

    timestamp: float
    """Unix epoch timestamp (float64)."""

    per_class_counts: dict[str, int] = field(default_factory=dict)
    """e.g. {'person': 3, 'car': 1}. Missing classes count as 0."""

    @property
    def total(self) -> int:
        return sum(self.per_class_counts.values())

    @property
    def has_detections(self) -> bool:
        return any(count > 0 for count in self.per_class_counts.values())

    def count_for(self, class_types) -> int:
        """Sum of counts restricted to *class_types*."""
        counts = self.per_class_counts
        return sum(counts.get(cls, 0) for cls in class_types)

    def __repr__(self) -> str:
        return f"DetectionSnapshot(t={self.timestamp:.3f} counts={self.per_class_counts})"
