from dataclasses import dataclass
from typing import Optional, Tuple

# Slider bounds of the interactive app; the slider value is an inverse cp
SLIDER_MIN = 1
SLIDER_MAX = 100
SLIDER_DEFAULT = 20


def cp_from_slider(value: float) -> float:
    return 1.0 / value


@dataclass(frozen=True)
class SplitParams:
    train_fraction: float = 0.8
    seed: Optional[int] = None


@dataclass(frozen=True)
class TreeParams:
    cp: float = 1.0 / SLIDER_DEFAULT
    # rpart defaults: minsplit=20, minbucket=round(minsplit / 3)
    min_samples_split: int = 20
    min_samples_leaf: int = 7
    random_state: int = 42


@dataclass(frozen=True)
class SweepParams:
    cps: Tuple[float, ...] = (0.1, 0.05, 0.02, 0.01, 0.005, 0.002, 0.001)
    train_fraction: float = 0.8
    seed: Optional[int] = 123
