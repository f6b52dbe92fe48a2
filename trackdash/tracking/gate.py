"""Accuracy gate for incoming location fixes."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_ACCURACY_M = 20.0


@dataclass(frozen=True)
class AccuracyGate:
    """
    Classify a fix as usable or low-quality from its accuracy radius.

    Fixes whose reported radius is strictly greater than ``max_accuracy_m``
    are rejected; the boundary value itself is accepted.
    """

    max_accuracy_m: float = DEFAULT_MAX_ACCURACY_M

    def accept(self, accuracy: float) -> bool:
        return accuracy <= self.max_accuracy_m
