"""
Output-quality estimate for a crop scaled to a target size.

The dominant scale factor (target size over crop size, whichever axis
needs more enlargement) is classified into one of six ordered tiers, each
with a label and a fill percentage for a gauge.  Qt-free.
"""

import math
from dataclasses import dataclass
from enum import Enum


class QualityTier(Enum):
    """Tiers ordered from best to worst: (label, gauge fill %, inclusive max scale)."""
    EXCELLENT = ("Excellent", 100, 0.5)
    VERY_GOOD = ("Very good", 85, 1.0)
    GOOD = ("Good", 70, 1.5)
    ACCEPTABLE = ("Acceptable", 50, 2.0)
    POOR = ("Poor", 30, 3.0)
    VERY_POOR = ("Very poor", 15, math.inf)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def fill_percent(self) -> int:
        return self.value[1]

    @property
    def max_scale(self) -> float:
        return self.value[2]

    @classmethod
    def for_scale(cls, scale_factor: float) -> "QualityTier":
        for tier in cls:
            if scale_factor <= tier.max_scale:
                return tier
        return cls.VERY_POOR


@dataclass(frozen=True)
class QualityEstimate:
    tier: QualityTier
    scale_factor: float


def estimate_quality(crop_width: float, crop_height: float, target_width: float, target_height: float) -> QualityEstimate:
    """Classify how much a crop must be enlarged to reach the target size.

    Crop dimensions must be positive; a zero dimension yields an infinite
    scale factor (VERY_POOR) rather than an error.
    """
    scale_x = target_width / crop_width if crop_width else math.inf
    scale_y = target_height / crop_height if crop_height else math.inf
    scale = max(scale_x, scale_y)
    return QualityEstimate(QualityTier.for_scale(scale), scale)
