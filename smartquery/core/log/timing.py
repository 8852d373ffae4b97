"""Timing helpers to log the duration of pipeline stages."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional


@dataclass
class _Timer:
    label: str
    logger: logging.Logger
    level: int
    unit: str
    count: Optional[int] = None
    start: float = field(default_factory=perf_counter)

    def set_count(self, count: int) -> None:
        self.count = count

    @property
    def elapsed(self) -> float:
        return perf_counter() - self.start

    def finish(self, success: bool = True) -> None:
        elapsed = self.elapsed
        if success:
            message = f"{self.label} completed in {elapsed:.2f}s"
            if self.count is not None:
                message += f" ({self.count:,} {self.unit})"
            self.logger.log(self.level, message)
        else:
            self.logger.warning(f"{self.label} failed after {elapsed:.2f}s")


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
    unit: str = "items",
) -> Iterator[_Timer]:
    """Context manager that logs how long the wrapped block took.

    Args:
        label: Description of the operation being timed
        logger: Logger instance to use (defaults to "smartquery.timer")
        level: Logging level for the success message
        unit: Unit name used when a count is reported via ``set_count``
    """
    log = logger or logging.getLogger("smartquery.timer")
    timer = _Timer(label=label, logger=log, level=level, unit=unit)

    try:
        yield timer
    except BaseException:
        timer.finish(success=False)
        raise
    else:
        timer.finish(success=True)
