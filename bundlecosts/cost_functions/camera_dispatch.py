"""Runtime selection of the camera-model specialization of a cost function.

Every reprojection cost takes the camera model class as its first
constructor argument. create_camera_cost_function resolves a runtime
identifier through the static CAMERA_MODELS table and forwards the
remaining arguments.

Any factory taking the camera model first can be dispatched the same way,
e.g. IsotropicNoiseCostFunctionWrapper.factory(ReprojErrorCost, stddev).
"""

import logging
from typing import Any, Callable

import pyceres

from bundlecosts.cost_functions.base_cost import AutoDiffCostFunction
from bundlecosts.sensors.camera_models import CameraModelId, camera_model_from_id

logger = logging.getLogger(__name__)


def create_camera_cost_function(
    cost_class: type[AutoDiffCostFunction] | Callable[..., pyceres.CostFunction],
    camera_model_id: CameraModelId | int | str,
    *args: Any,
    **kwargs: Any
) -> pyceres.CostFunction:
    """Create the camera-model specialization of a cost function.

    Args:
        cost_class: Cost function class with a create() method, or any
            callable taking the camera model first
        camera_model_id: CameraModelId, its integer value, or model name
        *args: Remaining constructor arguments
        **kwargs: Remaining constructor keyword arguments

    Returns:
        Cost function specialized for the camera model

    Raises:
        ValueError: If the camera model id is unknown
    """
    camera_model = camera_model_from_id(camera_model_id)
    factory = getattr(cost_class, "create", cost_class)
    logger.debug(
        f"Creating {getattr(cost_class, '__name__', repr(cost_class))} for camera model "
        f"{camera_model.model_name} ({camera_model.num_params} params)"
    )
    return factory(camera_model, *args, **kwargs)
