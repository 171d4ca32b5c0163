"""Optimization result returned by BundleAdjustmentProblem.solve."""

import logging
from typing import Any

import pyceres
from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

logger = logging.getLogger(__name__)


class OptimizationResult(BaseModel):
    """Results from pyceres optimization.

    Attributes:
        success: Whether optimization converged
        num_iterations: Number of iterations performed
        initial_cost: Initial cost function value
        final_cost: Final cost function value
        solve_time_seconds: Time spent in solver
        termination_message: Solver termination message
        metadata: Additional caller data
    """

    success: bool
    num_iterations: int
    initial_cost: float
    final_cost: float
    solve_time_seconds: float
    termination_message: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def warn_if_not_converged(self) -> Self:
        if not self.success:
            logger.warning(
                f"Optimization did not converge after {self.num_iterations} iterations "
                f"(final cost {self.final_cost:.6f})"
            )
        return self

    @property
    def cost_reduction(self) -> float:
        """Fraction of the initial cost removed (0-1)."""
        if self.initial_cost == 0.0:
            return 0.0
        return (self.initial_cost - self.final_cost) / self.initial_cost

    @property
    def cost_reduction_percent(self) -> float:
        """Cost reduction as a percentage (0-100)."""
        return self.cost_reduction * 100.0

    def summary(self) -> str:
        """Generate human-readable summary.

        Returns:
            Multi-line summary string
        """
        lines = [
            "=" * 60,
            "OPTIMIZATION RESULT",
            "=" * 60,
            f"Status:       {'Converged' if self.success else 'Did not converge'}",
            f"Iterations:   {self.num_iterations}",
            f"Solve time:   {self.solve_time_seconds:.2f}s",
            f"Initial cost: {self.initial_cost:.6f}",
            f"Final cost:   {self.final_cost:.6f}",
            f"Reduction:    {self.cost_reduction_percent:.1f}%",
            "=" * 60,
        ]
        if self.termination_message:
            lines.insert(-1, f"Message:      {self.termination_message}")
        if self.metadata:
            lines.append(f"Metadata:     {len(self.metadata)} entries")
        return "\n".join(lines)

    @classmethod
    def from_pyceres_summary(
        cls,
        *,
        summary: pyceres.SolverSummary,
        solve_time_seconds: float
    ) -> "OptimizationResult":
        """Create result from pyceres SolverSummary.

        Args:
            summary: pyceres solver summary
            solve_time_seconds: Measured solve time

        Returns:
            OptimizationResult with core fields filled
        """
        success = (
            summary.termination_type == pyceres.TerminationType.CONVERGENCE or
            summary.termination_type == pyceres.TerminationType.USER_SUCCESS
        )

        return cls(
            success=success,
            num_iterations=summary.num_successful_steps + summary.num_unsuccessful_steps,
            initial_cost=summary.initial_cost,
            final_cost=summary.final_cost,
            solve_time_seconds=solve_time_seconds,
            termination_message=str(summary.message),
        )
