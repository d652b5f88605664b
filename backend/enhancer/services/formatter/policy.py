"""Paragraph break decisions for sentence grouping."""

import random
from typing import Optional, Protocol


class BreakPolicy(Protocol):
    def should_break(self, sentences_in_paragraph: int) -> bool: ...


class RandomBreakPolicy:
    """Production policy: once a paragraph may close, close it with ``probability``."""

    def __init__(self, probability: float = 0.4, rng: Optional[random.Random] = None):
        self.probability = probability
        self.rng = rng or random.Random()

    def should_break(self, sentences_in_paragraph: int) -> bool:
        return self.rng.random() < self.probability


class FixedBreakPolicy:
    """Deterministic policy: close paragraphs at ``size`` sentences."""

    def __init__(self, size: int = 3):
        self.size = max(2, min(4, int(size)))

    def should_break(self, sentences_in_paragraph: int) -> bool:
        return sentences_in_paragraph >= self.size
