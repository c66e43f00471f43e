"""
droplet_impact — Control layer for axisymmetric droplet-on-plate impact runs.

Modules:
    run           Main simulation driver (run_sim)
    config        Pydantic ImpactConfig model for case.json
    schema        JSON Schema validation for case.json
    defaults      Numerical constants (tolerances, thresholds, cadences)
    parameters    Derived run constants (cell size, impact time, horizon)
    solver        FlowSolver protocol and wall boundary conditions
    kinematic     Stand-in FlowSolver backed by a numpy quadtree
    initial       Domain construction and initial droplet state
    refinement    Per-step adaptive refinement policy
    forcing       Gravity body force
    cleanup       Small droplet and bubble removal
    schedule      Step/time triggers and timestep clamping
    outputs       Volume log, interface, plate and snapshot writers
    state         SimulationState (time, step, counters, wall clock)
    termination   Run horizon check and final report
    wagner        Wagner-theory turnover point and plate pressure
    analysis      Plate force post-processing
    diagnostics   Per-output metrics CSV and run summary
    callbacks     SimulationCallback protocol and implementations
    logging_setup Root-logger file/console handlers for a run
    cli           droplet-impact command line (run, validate, info, analyse)
    _imports     Lazy import helper for optional dependencies
"""

__version__ = "0.3.0"
