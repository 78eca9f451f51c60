"""
Type aliases for Job Engine.

The distribution passes work on dense worker x task matrices. These aliases
name the numpy shapes used throughout the engine so signatures stay short.

Examples
--------
>>> import numpy as np
>>> from jobengine.typing import Float2D
>>> scores: Float2D = np.ones((3, 5))
"""

from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

Float1D: TypeAlias = NDArray[np.float64]
Int1D: TypeAlias = NDArray[np.int64]
Bool1D: TypeAlias = NDArray[np.bool_]
Idx1D: TypeAlias = NDArray[np.intp]

Float2D: TypeAlias = NDArray[np.float64]
Int2D: TypeAlias = NDArray[np.int64]
Bool2D: TypeAlias = NDArray[np.bool_]

WorkerId: TypeAlias = str
"""Stable identity of a colony worker as reported by the provider."""

TaskId: TypeAlias = str
"""Stable identity of a task (work type)."""

__all__ = [
    "Float1D",
    "Int1D",
    "Bool1D",
    "Idx1D",
    "Float2D",
    "Int2D",
    "Bool2D",
    "WorkerId",
    "TaskId",
]
