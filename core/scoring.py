"""
Weighted-product scoring and ranking of SystemMetrics.

A ranking function (ScoringConfiguration) is an ordered list of components,
each naming a metric, a weight, a mapping function and an optional
threshold penalty. The total score of a system is

    score = Π component_score_i ** weight_i

Component scores are absolute functions of the system's own raw values;
the population is only used to decide qualification. A system with a raw
value of exactly 0.0 for any configured metric is disqualified: it keeps a
place in the output with a zero score and an explanation, ranked last.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from core.errors import ConfigurationError
from core.metrics import SystemMetrics, metric_value
from utils import print_warning

DEFAULT_FUNCTION_NAME = "default"
DEFAULT_THRESHOLD_PENALTY = 0.1


class MappingFunction(str, Enum):
    LINEAR = "linear"
    LOG = "log"
    INVERSE = "inverse"
    THRESHOLD = "threshold"

    def apply(self, x: float) -> float:
        if self is MappingFunction.LOG:
            return math.log1p(x) if x > -1 else 0.0
        if self is MappingFunction.INVERSE:
            return 1.0 / (1.0 + x) if x != -1 else 0.0
        if self is MappingFunction.THRESHOLD:
            return 1.0 if x > 0 else 0.0
        return x


@dataclass(frozen=True)
class ScoringComponent:
    """One weighted metric term of a ranking function."""
    metric_name: str
    weight: float = 1.0
    mapping_function: MappingFunction = MappingFunction.LINEAR
    invert_better: bool = False
    threshold_value: Optional[float] = None
    threshold_penalty: float = DEFAULT_THRESHOLD_PENALTY
    # Accepted for document compatibility; not applied to scores
    normalization: str = "none"
    easing_function: str = "linear"

    def threshold_triggered(self, raw: float) -> bool:
        if self.threshold_value is None:
            return False
        if self.invert_better:
            return raw > self.threshold_value
        return raw < self.threshold_value

    def score(self, raw: float) -> float:
        """Mapped (and possibly penalized) score for a raw metric value."""
        x = 1.0 / (1.0 + raw) if self.invert_better else raw
        mapped = self.mapping_function.apply(x)
        if self.threshold_triggered(raw):
            mapped *= self.threshold_penalty
        return mapped

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringComponent":
        if not isinstance(data, dict):
            raise ConfigurationError(f"component must be a mapping, got {type(data).__name__}")
        metric_name = data.get("metric_name")
        if not metric_name or not isinstance(metric_name, str):
            raise ConfigurationError("component is missing 'metric_name'")

        mapping_name = str(data.get("mapping_function") or "linear").lower()
        try:
            mapping = MappingFunction(mapping_name)
        except ValueError:
            raise ConfigurationError(f"{metric_name}: unknown mapping function '{mapping_name}'")

        try:
            weight = float(data.get("weight", 1.0))
            penalty = float(data.get("threshold_penalty", DEFAULT_THRESHOLD_PENALTY))
            threshold = data.get("threshold_value")
            threshold = float(threshold) if threshold is not None else None
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{metric_name}: non-numeric component value ({e})")

        return cls(
            metric_name=metric_name,
            weight=weight,
            mapping_function=mapping,
            invert_better=bool(data.get("invert_better", False)),
            threshold_value=threshold,
            threshold_penalty=penalty,
            normalization=str(data.get("normalization") or "none"),
            easing_function=str(data.get("easing_function") or "linear"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric_name": self.metric_name,
            "weight": self.weight,
            "mapping_function": self.mapping_function.value,
            "invert_better": self.invert_better,
            "threshold_value": self.threshold_value,
            "threshold_penalty": self.threshold_penalty,
            "normalization": self.normalization,
            "easing_function": self.easing_function,
        }


@dataclass(frozen=True)
class ScoringConfiguration:
    """A named ranking function."""
    name: str
    components: List[ScoringComponent] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ScoringConfiguration":
        if not isinstance(data, dict):
            raise ConfigurationError(f"ranking function '{name}' must be a mapping")
        raw_components = data.get("components")
        if not isinstance(raw_components, list) or not raw_components:
            raise ConfigurationError(f"ranking function '{name}' has no components")
        return cls(
            name=name,
            components=[ScoringComponent.from_dict(c) for c in raw_components],
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "components": [c.to_dict() for c in self.components],
        }


@dataclass
class ScoringResult:
    system_name: str
    system_profile: str
    total_score: float
    component_scores: Dict[str, float]
    explanation: str
    disqualified: bool = False
    failing_metrics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system_name": self.system_name,
            "system_profile": self.system_profile,
            "total_score": self.total_score,
            "component_scores": dict(self.component_scores),
            "disqualified": self.disqualified,
            "failing_metrics": list(self.failing_metrics),
            "explanation": self.explanation,
        }


def hardcoded_default_configuration() -> ScoringConfiguration:
    """Built-in ranking function used when no document entry can be resolved."""
    return ScoringConfiguration(
        name=DEFAULT_FUNCTION_NAME,
        description="Built-in default: throughput, tail latency and knee sharpness",
        components=[
            ScoringComponent("randread_throughput_mbps", weight=0.6,
                             mapping_function=MappingFunction.LOG),
            ScoringComponent("randread_latency_p99_us", weight=0.3,
                             mapping_function=MappingFunction.LOG, invert_better=True,
                             threshold_value=1000.0, threshold_penalty=0.5),
            ScoringComponent("knee_point_latency_increase_percent", weight=0.1,
                             mapping_function=MappingFunction.LINEAR, invert_better=True,
                             threshold_value=50.0, threshold_penalty=0.3),
        ],
    )


# ══════════════════════════════════════════════════════════════
# Scoring
# ══════════════════════════════════════════════════════════════

def _weighted_factor(score: float, weight: float) -> float:
    if weight == 0:
        return 1.0
    if score <= 0:
        return 0.0
    return score ** weight


class ScoringFunction:
    """Applies one ScoringConfiguration to a population of systems."""

    def __init__(self, config: ScoringConfiguration):
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    def failing_metrics(self, system: SystemMetrics) -> List[str]:
        return [
            c.metric_name for c in self.config.components
            if metric_value(system, c.metric_name) == 0.0
        ]

    def _disqualified_result(self, system: SystemMetrics, failing: List[str]) -> ScoringResult:
        lines = [
            f"DISQUALIFIED - {system.system_name}:",
            "System disqualified due to missing or zero values for required metrics:",
        ]
        for c in self.config.components:
            if c.metric_name in failing:
                lines.append(f"- {c.metric_name}: MISSING/ZERO (required for ranking)")
            else:
                raw = metric_value(system, c.metric_name)
                lines.append(f"- {c.metric_name}: {raw:.3f} (weight: {c.weight:.1f})")
        lines.append("Total Score: 0.000 (DISQUALIFIED)")
        return ScoringResult(
            system_name=system.system_name,
            system_profile=system.system_profile,
            total_score=0.0,
            component_scores={c.metric_name: 0.0 for c in self.config.components},
            explanation="\n".join(lines),
            disqualified=True,
            failing_metrics=failing,
        )

    def score(self, system: SystemMetrics) -> ScoringResult:
        failing = self.failing_metrics(system)
        if failing:
            return self._disqualified_result(system, failing)

        lines = [f"Scoring breakdown for {system.system_name}:"]
        component_scores: Dict[str, float] = {}
        total = 1.0
        for c in self.config.components:
            raw = metric_value(system, c.metric_name)
            component = c.score(raw)
            component_scores[c.metric_name] = component
            total *= _weighted_factor(component, c.weight)
            penalty = " [threshold penalty]" if c.threshold_triggered(raw) else ""
            lines.append(f"- {c.metric_name}: {component:.6f} "
                         f"(weight: {c.weight:.1f}, raw: {raw:.1f}){penalty}")
        lines.append(f"Total Score: {total:.6f}")

        return ScoringResult(
            system_name=system.system_name,
            system_profile=system.system_profile,
            total_score=total,
            component_scores=component_scores,
            explanation="\n".join(lines),
        )

    def score_and_rank(self, systems: Sequence[SystemMetrics]) -> List[ScoringResult]:
        """Score every system; qualified by score descending, disqualified last (stable)."""
        results = [self.score(s) for s in systems]
        return sorted(results, key=lambda r: (r.disqualified, -r.total_score))


def score_and_rank(systems: Sequence[SystemMetrics],
                   config: ScoringConfiguration) -> List[ScoringResult]:
    return ScoringFunction(config).score_and_rank(systems)


# ══════════════════════════════════════════════════════════════
# Ranking-Function Selection
# ══════════════════════════════════════════════════════════════

def list_ranking_functions(document: Optional[Dict[str, Any]]) -> List[str]:
    """Function names in document order."""
    if not isinstance(document, dict):
        return []
    return [str(name) for name in document.keys()]


def list_non_example_functions(document: Optional[Dict[str, Any]]) -> List[str]:
    return [n for n in list_ranking_functions(document) if "example" not in n.lower()]


def resolve_ranking_function(document: Optional[Dict[str, Any]],
                             name: Optional[str] = None) -> ScoringConfiguration:
    """Pick a ranking function from a loaded document.

    Explicit name → that entry; no name → the first entry; unknown name →
    the 'default' entry; anything unusable → the hardcoded default. Every
    fallback is reported as a warning and never raises.
    """
    names = list_ranking_functions(document)
    if not names:
        print_warning("No ranking functions available, using hardcoded default")
        return hardcoded_default_configuration()

    if name is None:
        name = names[0]
    elif name not in document:
        print_warning(f"Ranking function '{name}' not found, falling back to '{DEFAULT_FUNCTION_NAME}'")
        name = DEFAULT_FUNCTION_NAME
        if name not in document:
            print_warning(f"No '{DEFAULT_FUNCTION_NAME}' ranking function, using hardcoded default")
            return hardcoded_default_configuration()

    try:
        return ScoringConfiguration.from_dict(name, document[name])
    except ConfigurationError as e:
        print_warning(f"Invalid ranking function '{name}': {e}; using hardcoded default")
        return hardcoded_default_configuration()


def scoring_functions_to_run(document: Optional[Dict[str, Any]],
                             name: Optional[str] = None) -> List[ScoringConfiguration]:
    """A single requested function, or every non-example function of the document."""
    if name is not None:
        return [resolve_ranking_function(document, name)]
    names = list_non_example_functions(document)
    if not names:
        return [resolve_ranking_function(document, None)]
    return [resolve_ranking_function(document, n) for n in names]
