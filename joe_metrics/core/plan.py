"""
Dependency-ordered computation plans for multi-input metrics.

A metric declares its inputs as an ordered list of steps. Each step names the
earlier steps it needs; run() executes the plan in waves, gathering every step
whose dependencies are satisfied concurrently, and never starts a step before
its dependencies have produced values.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

StepFn = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class MetricStep:
    """One input of a metric: fetched fresh, read from cache, or combined."""
    name: str
    fetch: StepFn
    depends_on: Tuple[str, ...] = ()


class MetricPlan:
    """An ordered, validated set of steps producing a metric."""

    def __init__(self, name: str, steps: Sequence[MetricStep]):
        self.name = name
        self.steps: List[MetricStep] = list(steps)
        self.execution_order: List[List[str]] = []
        self._validate()

    def _validate(self) -> None:
        seen = set()
        for step in self.steps:
            if step.name in seen:
                raise ValueError(f"{self.name}: duplicate step '{step.name}'")
            missing = [dep for dep in step.depends_on if dep not in seen]
            if missing:
                raise ValueError(
                    f"{self.name}: step '{step.name}' depends on {missing}, "
                    f"which must be declared before it"
                )
            seen.add(step.name)

    @staticmethod
    async def _run_step(step: MetricStep, results: Dict[str, Any]) -> Any:
        value = step.fetch(results)
        if inspect.isawaitable(value):
            value = await value
        return value

    async def run(self) -> Dict[str, Any]:
        """
        Execute all steps and return their results by step name.

        The first failing step's exception propagates; no partial result is returned.
        """
        results: Dict[str, Any] = {}
        pending = list(self.steps)
        self.execution_order = []

        while pending:
            ready = [step for step in pending if all(dep in results for dep in step.depends_on)]
            values = await asyncio.gather(*(self._run_step(step, dict(results)) for step in ready))
            for step, value in zip(ready, values):
                results[step.name] = value
            self.execution_order.append([step.name for step in ready])
            pending = [step for step in pending if step.name not in results]

        return results
