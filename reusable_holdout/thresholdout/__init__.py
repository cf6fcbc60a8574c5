from .oracle import NoiseDistribution, OracleState, ThresholdoutOracle

__all__ = ['NoiseDistribution', 'OracleState', 'ThresholdoutOracle']
