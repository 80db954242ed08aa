"""
Shared domain types for the sign capture dashboard.

Centralizes enums, data classes, and constants used across modules
to eliminate circular imports and ensure type consistency.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


# =============================================================================
# Label Categories
# =============================================================================

@dataclass(frozen=True)
class SymbolCategory:
    """A group of selectable labels shown together in the view."""
    key: str
    name: str
    symbols: Tuple[str, ...]


SYMBOL_CATEGORIES: Dict[str, SymbolCategory] = {
    "vowels": SymbolCategory("vowels", "Vowels", ("A", "E", "I", "O", "U")),
    "alphabet": SymbolCategory("alphabet", "Alphabet", tuple("ABCDEFGHIJKLMNOPQRSTUVWXYZ")),
    "numbers": SymbolCategory("numbers", "Numbers", tuple("0123456789")),
    "operations": SymbolCategory("operations", "Operations", ("+", "-", "×", "÷", "=", "%")),
}

DEFAULT_CATEGORY = "vowels"
DEFAULT_LABEL = "A"
DEFAULT_MODEL_NAME = "modelo_senas_v1"

# Remote training refuses smaller corpora
MIN_TRAINING_SAMPLES = 10

RECORDING_INTERVAL_BOUNDS_MS = (500, 5000)


# =============================================================================
# Pipeline Data
# =============================================================================

@dataclass(frozen=True)
class Sample:
    """One labeled JPEG payload destined for the remote training corpus."""
    label: str
    payload: bytes

    def __repr__(self):
        return f"Sample({self.label!r}, {len(self.payload)} bytes)"


@dataclass(frozen=True)
class DetectionState:
    """Latest hand-presence signal. Replaced wholesale on every detector event."""
    hands_present: int = 0
    is_active: bool = False

    @classmethod
    def from_count(cls, hands: int) -> "DetectionState":
        hands = max(0, int(hands))
        return cls(hands_present=hands, is_active=hands > 0)


class RecorderState(Enum):
    """Recording controller states."""
    IDLE = "idle"
    ARMED = "armed"


@dataclass(frozen=True)
class RecordingSession:
    """Snapshot of the recording session as seen by the view."""
    armed: bool = False
    label: str = DEFAULT_LABEL
    interval_ms: int = 1000
    queued_count: int = 0


# =============================================================================
# Remote-owned Data
# =============================================================================

@dataclass(frozen=True)
class ModelInfo:
    """A trained model as listed by the remote service."""
    name: str
    accuracy: float = 0.0
    sample_count: int = 0
    classes: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: dict) -> "ModelInfo":
        """Create from the `/api/models` entry format."""
        return cls(
            name=str(d.get("name", "")),
            accuracy=float(d.get("accuracy") or 0.0),
            sample_count=int(d.get("n_samples") or 0),
            classes=tuple(d.get("classes") or ()),
        )


@dataclass(frozen=True)
class SampleInventory:
    """Per-class sample counts held by the remote service."""
    total_samples: int = 0
    samples_per_class: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> "SampleInventory":
        per_class = {str(k): int(v) for k, v in (d.get("samples_per_class") or {}).items()}
        return cls(total_samples=int(d.get("total_samples") or 0), samples_per_class=per_class)

    def with_sample(self, label: str) -> "SampleInventory":
        """Return a copy counting one more sample for `label`."""
        per_class = dict(self.samples_per_class)
        per_class[label] = per_class.get(label, 0) + 1
        return replace(self, total_samples=self.total_samples + 1, samples_per_class=per_class)

    @property
    def class_count(self) -> int:
        return len(self.samples_per_class)


@dataclass(frozen=True)
class Prediction:
    """One class score."""
    label: str
    confidence: float


@dataclass(frozen=True)
class PredictionResult:
    """Ranked prediction output. The first entry is the primary prediction."""
    ranked: Tuple[Prediction, ...]
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "PredictionResult":
        """Parse `/api/predict` output, ranking by descending confidence."""
        entries: List[Prediction] = [
            Prediction(label=str(p.get("class")), confidence=float(p.get("confidence") or 0.0))
            for p in (d.get("all_predictions") or [])
        ]
        # Some responses carry only the primary prediction
        if not entries and d.get("prediction") is not None:
            entries.append(Prediction(str(d["prediction"]), float(d.get("confidence") or 0.0)))
        entries.sort(key=lambda p: -p.confidence)
        return cls(ranked=tuple(entries), message=d.get("message"))

    @property
    def prediction(self) -> Optional[str]:
        return self.ranked[0].label if self.ranked else None

    @property
    def confidence(self) -> float:
        return self.ranked[0].confidence if self.ranked else 0.0

    def __repr__(self):
        return f"PredictionResult({self.prediction}, conf={self.confidence:.2f})"
