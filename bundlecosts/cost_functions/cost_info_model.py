"""Typed description of registered cost functions.

Pairs each pyceres cost function with the parameter blocks it operates on,
so callers can build, filter and summarize residual blocks before pushing
them into a BundleAdjustmentProblem.
"""

import logging
from typing import Any, Literal

import numpy as np
import pyceres
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

CostType = Literal[
    "reprojection",
    "rig_reprojection",
    "absolute_pose_prior",
    "position_prior",
    "relative_pose_prior",
    "point_alignment",
    "sampson",
]


class CostInfo(BaseModel):
    """Information about a single residual block.

    Attributes:
        cost: The pyceres cost function
        parameters: Parameter arrays, in the cost's block order
        description: Human-readable description
        cost_type: Category of cost
        weight: Weight applied to this cost (1 / stddev for whitened costs)
        metadata: Additional type-specific metadata
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    cost: pyceres.CostFunction
    parameters: list[np.ndarray]
    description: str
    cost_type: CostType
    weight: float = 1.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_block_count(self) -> "CostInfo":
        expected = len(self.cost.parameter_block_sizes())
        if len(self.parameters) != expected:
            raise ValueError(
                f"{self.description}: cost expects {expected} parameter blocks, "
                f"got {len(self.parameters)}"
            )
        return self

    def __str__(self) -> str:
        return f"CostInfo[{self.cost_type}]: {self.description}"

    def __repr__(self) -> str:
        return (
            f"CostInfo(type={self.cost_type}, weight={self.weight:.2f}, "
            f"params={len(self.parameters)}, desc='{self.description}')"
        )

    @property
    def num_parameters(self) -> int:
        """Number of parameter blocks."""
        return len(self.parameters)

    @property
    def total_parameter_size(self) -> int:
        """Total size of all parameter blocks."""
        return sum(len(p) for p in self.parameters)


class ReprojectionCostInfo(CostInfo):
    """Cost info for an image observation of a 3D point."""

    cost_type: Literal["reprojection", "rig_reprojection"] = "reprojection"
    image_id: int
    point3D_id: int
    camera_model_name: str

    @model_validator(mode="before")
    @classmethod
    def set_description(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if "description" not in data:
                data["description"] = (
                    f"Reproj[{data['camera_model_name']}]: image {data['image_id']} "
                    f"-> point {data['point3D_id']}"
                )
            if "metadata" not in data:
                data["metadata"] = {
                    "image_id": data["image_id"],
                    "point3D_id": data["point3D_id"],
                }
        return data


class PosePriorCostInfo(CostInfo):
    """Cost info for absolute, position or relative pose priors."""

    cost_type: Literal["absolute_pose_prior", "position_prior", "relative_pose_prior"] = "absolute_pose_prior"
    image_id: int
    other_image_id: int | None = None

    @model_validator(mode="before")
    @classmethod
    def set_description(cls, data: Any) -> Any:
        if isinstance(data, dict) and "description" not in data:
            cost_type = data.get("cost_type", "absolute_pose_prior")
            if data.get("other_image_id") is not None:
                data["description"] = (
                    f"{cost_type}: image {data['image_id']} <-> {data['other_image_id']}"
                )
            else:
                data["description"] = f"{cost_type}: image {data['image_id']}"
        return data


class CostCollection(BaseModel):
    """Collection of cost functions with filtering and summary helpers."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    costs: list[CostInfo] = Field(default_factory=list)

    def add(self, *, cost_info: CostInfo) -> None:
        """Add a cost to the collection."""
        self.costs.append(cost_info)

    def extend(self, *, costs: list[CostInfo]) -> None:
        """Add multiple costs to the collection."""
        self.costs.extend(costs)

    def filter_by_type(self, *, cost_type: CostType) -> list[CostInfo]:
        """Get all costs of a specific type."""
        return [c for c in self.costs if c.cost_type == cost_type]

    def filter_by_image(self, *, image_id: int) -> list[CostInfo]:
        """Get all costs touching a specific image."""
        return [
            c for c in self.costs
            if isinstance(c, ReprojectionCostInfo) and c.image_id == image_id
        ] + [
            c for c in self.costs
            if isinstance(c, PosePriorCostInfo)
            and image_id in (c.image_id, c.other_image_id)
        ]

    @property
    def total_costs(self) -> int:
        """Total number of costs."""
        return len(self.costs)

    @property
    def total_weight(self) -> float:
        """Sum of all weights."""
        return sum(c.weight for c in self.costs)

    def get_summary(self) -> dict[str, Any]:
        """Count and weight of the costs, grouped by type."""
        summary: dict[str, Any] = {
            "total_costs": self.total_costs,
            "total_weight": self.total_weight,
            "by_type": {},
        }

        for cost in self.costs:
            info = summary["by_type"].setdefault(
                cost.cost_type,
                {"count": 0, "total_weight": 0.0, "avg_weight": 0.0},
            )
            info["count"] += 1
            info["total_weight"] += cost.weight

        for info in summary["by_type"].values():
            info["avg_weight"] = info["total_weight"] / info["count"]

        return summary

    def log_summary(self) -> None:
        """Log the summary at INFO level."""
        summary = self.get_summary()
        logger.info(f"Cost summary: {summary['total_costs']} costs, weight={summary['total_weight']:.1f}")
        for cost_type, info in summary["by_type"].items():
            logger.info(
                f"  {cost_type:20s}: {info['count']:4d} costs, "
                f"weight={info['total_weight']:8.1f} (avg={info['avg_weight']:.2f})"
            )

    def to_problem(self, *, problem: Any) -> None:
        """Add all costs to a BundleAdjustmentProblem.

        Args:
            problem: BundleAdjustmentProblem instance
        """
        for cost_info in self.costs:
            problem.add_residual_block(
                cost=cost_info.cost,
                parameters=cost_info.parameters,
            )
