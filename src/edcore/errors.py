"""
Errors raised by the sample-size engine.

Every error is a rejected single calculation: callers show the message and
recompute once the input is fixed. All of them are `ValueError`s so code that
already guards numeric input with `except ValueError` keeps working.
"""

from __future__ import annotations


class DesignError(ValueError):
    """Base class for malformed experiment-design input."""


class DegenerateEffectError(DesignError):
    """Effect size is zero, so the sample-size denominator vanishes."""


class InvalidAllocationError(DesignError):
    """Traffic allocation is short, non-positive, or does not sum to 100."""


class InvalidRangeError(DesignError):
    """A parameter lies outside its admissible range."""


class ZeroTrafficError(DesignError):
    """Duration requested with no effective daily traffic."""
