from .simulation_driver import SimulationDriver, build_report, run_sim

__all__ = ['SimulationDriver', 'build_report', 'run_sim']
