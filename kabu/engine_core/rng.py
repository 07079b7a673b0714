"""
Deterministic RNG used for shuffling during state initialization.

A seeded generator is a 32-bit add-xorshift-multiply mixer: each call
advances the state by a fixed odd constant and scrambles it, so the
period covers the whole 32-bit state space.
"""

from __future__ import annotations
from typing import Callable, MutableSequence
import random


RandomSource = Callable[[], float]

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply."""
    return (a * b) & _MASK32


def hash_string(text: str) -> int:
    """Polynomial rolling hash (multiplier 31) with 32-bit wraparound."""
    h = 0
    for ch in text:
        h = (_imul(31, h) + ord(ch)) & _MASK32
    return h


class SeededRandom:
    """
    Reproducible float source in [0, 1).

    Instances are callable so they can stand in wherever a plain
    `() -> float` random source is accepted.
    """

    def __init__(self, seed: str | int | float):
        if isinstance(seed, str):
            state = hash_string(seed)
        else:
            state = int(seed) or 1
        self.seed = seed
        self._state = state & _MASK32

    def random(self) -> float:
        self._state = (self._state + _INCREMENT) & _MASK32
        s = self._state
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    __call__ = random


def create_rng(rng: RandomSource | None = None, seed: str | int | float | None = None) -> RandomSource:
    """
    Pick the random source for a runtime.

    An explicit `rng` wins over `seed`; with neither, fall back to the
    unseeded module-level generator.
    """
    if rng is not None:
        return rng
    if seed is not None:
        return SeededRandom(seed)
    return random.random


def shuffle_in_place(cards: MutableSequence[str], rng: RandomSource) -> None:
    """Fisher-Yates shuffle driven by `rng`."""
    for i in range(len(cards) - 1, 0, -1):
        j = int(rng() * (i + 1))
        cards[i], cards[j] = cards[j], cards[i]
