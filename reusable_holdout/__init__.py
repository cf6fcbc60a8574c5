"""
Reusable holdout simulator.

Adaptive feature selection in which every comparison against the holdout set
goes through the Thresholdout mechanism.
"""

__version__ = "1.0.0"

from reusable_holdout.simulation_driver import SimulationDriver, build_report, run_sim

__all__ = ['SimulationDriver', 'build_report', 'run_sim', '__version__']
