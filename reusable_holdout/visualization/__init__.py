from .simulation_visualizer import SimulationVisualizer

__all__ = ['SimulationVisualizer']
