"""Solver configuration for bundle adjustment problems.

OptimizationConfig holds the pyceres solver knobs and the default robust
loss applied to residual blocks.
"""

import os
from dataclasses import dataclass
from typing import Literal

import pyceres


@dataclass
class OptimizationConfig:
    """Configuration for pyceres nonlinear optimization.

    Attributes:
        max_iterations: Maximum number of optimization iterations
        function_tolerance: Convergence tolerance for cost function
        gradient_tolerance: Convergence tolerance for gradient
        parameter_tolerance: Convergence tolerance for parameters
        robust_loss_type: Robust loss applied to residual blocks by default
        robust_loss_param: Scale of the robust loss (e.g. huber delta, in pixels)
        linear_solver: Linear solver type
        trust_region_strategy: Trust region strategy
        num_threads: Number of threads (None = auto-detect)
        minimizer_progress_to_stdout: Print optimization progress
    """

    # Convergence criteria
    max_iterations: int = 100
    function_tolerance: float = 1e-6
    gradient_tolerance: float = 1e-10
    parameter_tolerance: float = 1e-8

    # Robust loss function
    robust_loss_type: Literal["trivial", "huber", "cauchy", "soft_l1"] = "trivial"
    robust_loss_param: float = 1.0

    # Linear solver
    linear_solver: Literal[
        "dense_qr",
        "dense_schur",
        "sparse_schur",
        "sparse_normal_cholesky",
    ] = "dense_qr"

    # Trust region strategy
    trust_region_strategy: Literal["levenberg_marquardt", "dogleg"] = "levenberg_marquardt"

    # Parallelization
    num_threads: int | None = None

    # Logging
    minimizer_progress_to_stdout: bool = False

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.robust_loss_param <= 0.0:
            raise ValueError(f"robust_loss_param must be positive, got {self.robust_loss_param}")
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {self.num_threads}")

    def to_solver_options(self) -> pyceres.SolverOptions:
        """Convert to pyceres SolverOptions.

        Returns:
            pyceres.SolverOptions configured with these settings
        """
        options = pyceres.SolverOptions()

        # Convergence
        options.max_num_iterations = self.max_iterations
        options.function_tolerance = self.function_tolerance
        options.gradient_tolerance = self.gradient_tolerance
        options.parameter_tolerance = self.parameter_tolerance

        options.linear_solver_type = {
            "dense_qr": pyceres.LinearSolverType.DENSE_QR,
            "dense_schur": pyceres.LinearSolverType.DENSE_SCHUR,
            "sparse_schur": pyceres.LinearSolverType.SPARSE_SCHUR,
            "sparse_normal_cholesky": pyceres.LinearSolverType.SPARSE_NORMAL_CHOLESKY,
        }[self.linear_solver]

        if self.trust_region_strategy == "levenberg_marquardt":
            options.trust_region_strategy_type = pyceres.TrustRegionStrategyType.LEVENBERG_MARQUARDT
        elif self.trust_region_strategy == "dogleg":
            options.trust_region_strategy_type = pyceres.TrustRegionStrategyType.DOGLEG

        # Threading
        if self.num_threads is None:
            cpu_count = os.cpu_count()
            options.num_threads = max(cpu_count - 1 if cpu_count else 1, 1)
        else:
            options.num_threads = self.num_threads

        options.minimizer_progress_to_stdout = self.minimizer_progress_to_stdout

        return options

    def get_loss_function(self) -> pyceres.LossFunction | None:
        """Get robust loss function.

        Returns:
            pyceres loss function, or None for the trivial (squared) loss
        """
        if self.robust_loss_type == "huber":
            return pyceres.HuberLoss(self.robust_loss_param)
        elif self.robust_loss_type == "cauchy":
            return pyceres.CauchyLoss(self.robust_loss_param)
        elif self.robust_loss_type == "soft_l1":
            return pyceres.SoftLOneLoss(self.robust_loss_param)
        return None
