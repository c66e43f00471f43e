"""
JSON Schema for case.json — the parameter file that drives an impact run.

Fields correspond to ``droplet_impact.config.ImpactConfig``.
"""

import jsonschema

_POSITIVE = {"type": "number", "exclusiveMinimum": 0}
_NON_NEGATIVE = {"type": "number", "minimum": 0}

CASE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Droplet Impact Case",
    "description": "Parameters for a single axisymmetric droplet-on-plate impact run.",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "format_version": {
            "type": "string",
            "description": "Schema version. Must be '1.0' if present.",
            "enum": ["1.0"],
        },
        "name": {
            "type": ["string", "null"],
            "description": "Run label used for the output directory.",
        },
        "description": {
            "type": ["string", "null"],
            "description": "Optional free-text description.",
        },
        "rho_ratio": {**_POSITIVE, "description": "Gas to liquid density ratio."},
        "mu_ratio": {**_POSITIVE, "description": "Gas to liquid viscosity ratio."},
        "reynolds": {**_POSITIVE, "description": "Reynolds number of the liquid."},
        "weber": {**_POSITIVE, "description": "Weber number of the liquid."},
        "froude": {**_POSITIVE, "description": "Froude number."},
        "drop_vel": {
            "type": "number",
            "description": "Initial axial droplet velocity (negative is toward the plate).",
        },
        "drop_radius": {**_POSITIVE, "description": "Droplet radius."},
        "initial_drop_height": {
            **_NON_NEGATIVE,
            "description": "Gap between the droplet and the plate at t = 0.",
        },
        "min_level": {"type": "integer", "description": "Minimum tree level."},
        "max_level": {"type": "integer", "description": "Maximum tree level."},
        "box_width": {"type": "number", "description": "Width of the square domain."},
        "plate_thickness": {**_POSITIVE, "description": "Plate thickness."},
        "plate_width": {**_POSITIVE, "description": "Radial extent of the plate."},
        "drop_centre": {
            "type": ["number", "null"],
            "description": "Axial position of the droplet centre. Defaults to radius + height.",
        },
        "volume_output_timestep": {**_POSITIVE, "description": "Volume log cadence."},
        "interface_output_timestep": {**_POSITIVE, "description": "Interface dump cadence."},
        "plate_output_timestep": {**_POSITIVE, "description": "Plate pressure cadence."},
        "gfs_output_timestep": {**_POSITIVE, "description": "Snapshot cadence."},
        "start_output_time": {**_NON_NEGATIVE, "description": "Output window start."},
        "end_output_time": {"type": "number", "description": "Output window end."},
        "hard_max_time": {**_POSITIVE, "description": "Upper bound on the run horizon."},
    },
}


class ValidationError(Exception):
    """Raised when a case.json fails validation."""


def validate_case(case_config):
    """
    Validate a case configuration dict against the schema.

    Raises ValidationError on failure.
    """
    fv = case_config.get("format_version")
    if fv is not None and fv != "1.0":
        raise ValidationError(
            f"Unsupported format_version '{fv}'. This version of droplet_impact supports '1.0'."
        )
    try:
        jsonschema.validate(instance=case_config, schema=CASE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValidationError(e.message) from e
