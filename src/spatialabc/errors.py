"""
===========================================================
errors.py
Last Updated: 2026-10-19
===========================================================

Description:
    Exceptions and warning categories raised while building,
    sampling and simulating a spatial SEIR model.

Notes:
    - Configuration problems are ValueErrors and are fatal.
    - Sampling soft-failures are warnings; the batch continues.
    - Simulation failures are recorded per particle by the
      dispatcher and never abort a batch.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from typing import Optional, Tuple


class ModelConfigurationError(ValueError):
    """Malformed model composition or configuration values"""


class ComponentOrderError(ModelConfigurationError):
    """A model component was passed in the wrong role position"""
    def __init__(self, role: str, expected: int, found: Optional[int]):
        self.role = role
        self.expected = expected
        self.found = found
        super().__init__(
            f"Model components were not provided in the correct order: "
            f"'{role}' expected component type {expected}, got {found}."
        )


class ComponentMismatchError(ModelConfigurationError):
    """Two components disagree on a shared dimension"""
    def __init__(self, components: Tuple[str, str], quantity: str, values: Tuple = ()):
        self.components = components
        self.quantity = quantity
        self.values = values
        detail = f": {', '.join(str(v) for v in values)}" if values else ""
        super().__init__(
            f"{components[0]} and {components[1]} imply a different number of {quantity}{detail}."
        )


class ParameterShapeError(ModelConfigurationError):
    """Parameter matrix/vector does not match the derived parameter count"""
    def __init__(self, expected: int, found: int):
        self.expected = expected
        self.found = found
        super().__init__(
            f"Number of supplied parameters does not match model specification: "
            f"expected {expected}, got {found}."
        )


class ComponentInUseError(RuntimeError):
    """Teardown requested while a component is still referenced"""


class SimulationError(RuntimeError):
    """A single particle simulation could not be completed"""


class RhoConstraintWarning(UserWarning):
    """Spatial correlation draw still violates sum(rho) <= 1 after the retry cap"""


class SimulationFailureWarning(UserWarning):
    """One or more particles in a batch failed to simulate"""


class CoreCountWarning(UserWarning):
    """More worker processes requested than the machine has cores"""
