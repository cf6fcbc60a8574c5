"""
Adaptive Selection Module.

- AdaptiveSelectionLoop: runs the bootstrap round and the adaptive rounds.
- RoundRecord / SimulationResult: append-only per-round provenance.
"""

from .adaptive_loop import AdaptiveSelectionLoop
from .records import RoundRecord, SimulationResult

__all__ = ['AdaptiveSelectionLoop', 'RoundRecord', 'SimulationResult']
