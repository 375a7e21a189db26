"""
===========================================================
validation.py
Last Updated: 2026-10-19
===========================================================

Description:
    Cross-checks that the seven sub-models composed into a
    spatial SEIR model agree with each other before any
    sampling happens.

API:
    validate_components(data_model, exposure_model, reinfection_model,
                        distance_model, transition_priors,
                        initial_values, sampling_control) -> None

Notes:
    - Raises ComponentOrderError if a component sits in the wrong
      role position (checked by type tag, before any dimension).
    - Raises ComponentMismatchError naming the disagreeing pair and
      the quantity (locations, time points, lag matrices).
-----------------------------------------------------------
License: MIT
===========================================================
"""
from .components import (
    DATA_MODEL_TYPE,
    EXPOSURE_MODEL_TYPE,
    REINFECTION_MODEL_TYPE,
    DISTANCE_MODEL_TYPE,
    TRANSITION_MODEL_TYPE,
    INIT_CONTAINER_TYPE,
    SAMPLING_CONTROL_MODEL_TYPE,
    TRANSITION_MODES,
)
from .errors import ComponentMismatchError, ComponentOrderError, ModelConfigurationError

ROLES = (
    ("data model", DATA_MODEL_TYPE),
    ("exposure model", EXPOSURE_MODEL_TYPE),
    ("reinfection model", REINFECTION_MODEL_TYPE),
    ("distance model", DISTANCE_MODEL_TYPE),
    ("transition priors", TRANSITION_MODEL_TYPE),
    ("initial value container", INIT_CONTAINER_TYPE),
    ("sampling control", SAMPLING_CONTROL_MODEL_TYPE),
)


def check_component_order(*components):
    """Make sure each argument is the component its position expects"""
    if len(components) != len(ROLES):
        raise ModelConfigurationError(f"Expected {len(ROLES)} model components, got {len(components)}")
    for (role, expected), component in zip(ROLES, components):
        found = getattr(component, "component_type", None)
        if found != expected:
            raise ComponentOrderError(role, expected, found)


def validate_components(data_model, exposure_model, reinfection_model, distance_model,
                        transition_priors, initial_values, sampling_control):
    check_component_order(data_model, exposure_model, reinfection_model, distance_model,
                          transition_priors, initial_values, sampling_control)

    if data_model.n_loc != exposure_model.n_loc:
        raise ComponentMismatchError(("Exposure model", "data model"), "locations",
                                     (data_model.n_loc, exposure_model.n_loc))
    if data_model.n_tpt != exposure_model.n_tpt:
        raise ComponentMismatchError(("Exposure model", "data model"), "time points",
                                     (data_model.n_tpt, exposure_model.n_tpt))
    if data_model.n_loc != distance_model.n_loc:
        raise ComponentMismatchError(("Data model", "distance model"), "locations",
                                     (data_model.n_loc, distance_model.n_loc))
    if len(distance_model.tdm_list) != data_model.n_tpt:
        raise ComponentMismatchError(("Lagged distance model", "data model"), "time points",
                                     (len(distance_model.tdm_list), data_model.n_tpt))
    n_lags = distance_model.n_lags
    for t, lags in enumerate(distance_model.tdm_list):
        if len(lags) != n_lags:
            raise ComponentMismatchError(
                ("Lagged distance model (time 0)", f"lagged distance model (time {t})"),
                "lag matrices", (n_lags, len(lags))
            )
    if data_model.n_loc != initial_values.n_loc:
        raise ComponentMismatchError(("Data model", "initial value container"), "locations",
                                     (data_model.n_loc, initial_values.n_loc))
    if reinfection_model.mode != "SEIR" and reinfection_model.n_tpt != data_model.n_tpt:
        raise ComponentMismatchError(("Reinfection model", "data model"), "time points",
                                     (reinfection_model.n_tpt, data_model.n_tpt))
    if transition_priors.mode not in TRANSITION_MODES:
        raise ModelConfigurationError(f"Invalid transition mode: {transition_priors.mode}")
