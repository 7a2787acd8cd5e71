from __future__ import annotations

import enum

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .types import PixelClass

CAUTION_PERCENTAGE = 5.0
ALARMING_PERCENTAGE = 10.0


class DiffStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    changed_pixels: int = Field(ge=0)
    total_pixels: int = Field(gt=0)
    antialiased_pixels: int = Field(default=0, ge=0)
    diff_percentage: float = Field(ge=0.0, le=100.0)


class Severity(str, enum.Enum):
    FINE = "fine"
    CAUTION = "caution"
    ALARMING = "alarming"


def aggregate(changed_pixels: int, total_pixels: int, antialiased_pixels: int = 0) -> DiffStatistics:
    if total_pixels <= 0:
        raise ValueError("total_pixels must be positive")
    if not 0 <= changed_pixels <= total_pixels:
        raise ValueError(f"changed_pixels {changed_pixels} out of range for {total_pixels} pixels")
    return DiffStatistics(
        changed_pixels=changed_pixels,
        total_pixels=total_pixels,
        antialiased_pixels=antialiased_pixels,
        diff_percentage=changed_pixels / total_pixels * 100,
    )


def aggregate_classes(classes: np.ndarray) -> DiffStatistics:
    # Anti-aliased pixels are reported separately and never counted as changed.
    return aggregate(
        changed_pixels=int(np.count_nonzero(classes == PixelClass.CHANGED)),
        total_pixels=int(classes.size),
        antialiased_pixels=int(np.count_nonzero(classes == PixelClass.ANTIALIASED)),
    )


def severity_for(diff_percentage: float) -> Severity:
    if diff_percentage > ALARMING_PERCENTAGE:
        return Severity.ALARMING
    if diff_percentage > CAUTION_PERCENTAGE:
        return Severity.CAUTION
    return Severity.FINE
