"""
Pydantic configuration model for case.json.

Usage::

    from droplet_impact.config import ImpactConfig

    config = ImpactConfig.from_case("/path/to/case")
    print(config.run_label)        # "impact_re1000_we1000_fr10.1"
    print(config.model_dump())     # dict, suitable for JSON serialisation
"""

from __future__ import annotations

import json
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from droplet_impact import defaults

CASE_FILENAME = "case.json"
OUTPUTS_PREFIX = "outputs_"


class ImpactConfig(BaseModel):
    """Physical and computational parameters of a single impact run.

    Values are dimensionless: lengths are scaled by the droplet radius,
    velocities by the impact speed and densities/viscosities by the liquid.
    The axial coordinate ``x`` is the distance from the plate and ``y`` is
    the radial distance from the axis of symmetry.
    """

    format_version: str = "1.0"
    name: Optional[str] = None
    description: Optional[str] = None

    # Physical parameters
    rho_ratio: float = Field(0.003, gt=0)
    mu_ratio: float = Field(0.002, gt=0)
    reynolds: float = Field(1000.0, gt=0)
    weber: float = Field(1000.0, gt=0)
    froude: float = Field(10.1, gt=0)
    drop_vel: float = -1.0
    drop_radius: float = Field(1.0, gt=0)
    initial_drop_height: float = Field(0.2, ge=0)

    # Computational parameters
    min_level: int = 4
    max_level: int = 12
    box_width: float = 4.0
    plate_thickness: float = Field(0.1, gt=0)
    plate_width: float = Field(2.0, gt=0)
    drop_centre: float

    # Output cadences and window
    volume_output_timestep: float = Field(defaults.VOLUME_OUTPUT_INTERVAL, gt=0)
    interface_output_timestep: float = Field(0.01, gt=0)
    plate_output_timestep: float = Field(0.005, gt=0)
    gfs_output_timestep: float = Field(0.1, gt=0)
    start_output_time: float = Field(0.0, ge=0)
    end_output_time: float = 1.0
    hard_max_time: float = Field(1.0, gt=0)

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def default_drop_centre(cls, data):
        """Place the droplet centre one radius plus the initial height above the plate."""
        if isinstance(data, dict) and data.get("drop_centre") is None:
            radius = data.get("drop_radius", cls.model_fields["drop_radius"].default)
            height = data.get(
                "initial_drop_height", cls.model_fields["initial_drop_height"].default
            )
            data = {**data, "drop_centre": float(radius) + float(height)}
        return data

    @field_validator("format_version")
    @classmethod
    def check_format_version(cls, v: str) -> str:
        if v != "1.0":
            raise ValueError(
                f"Unsupported format_version '{v}'. "
                "This version of droplet_impact supports '1.0'."
            )
        return v

    @model_validator(mode="after")
    def check_output_window(self) -> "ImpactConfig":
        if self.end_output_time < self.start_output_time:
            raise ValueError(
                f"end_output_time ({self.end_output_time}) is before "
                f"start_output_time ({self.start_output_time})"
            )
        return self

    @property
    def run_label(self) -> str:
        """Label used for output directories and filenames."""
        if self.name:
            return self.name
        return f"impact_re{self.reynolds:g}_we{self.weber:g}_fr{self.froude:g}"

    @classmethod
    def from_case(cls, case_dir: str) -> "ImpactConfig":
        """Load and validate case.json from a case directory."""
        case_path = os.path.join(case_dir, CASE_FILENAME)
        if not os.path.isfile(case_path):
            raise FileNotFoundError(
                f'Could not find "{CASE_FILENAME}" in {case_dir}'
            )
        with open(case_path) as f:
            data = json.load(f)
        return cls.model_validate(data)
