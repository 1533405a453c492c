"""town_kernel.domain -- pure helpers shared by the pipeline packages."""

from town_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
]
