"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON configuration files.
- Enforcement of schema constraints and bounds on simulation options.
- Deterministic seed propagation for reproducibility.
"""

from .config_manager import ConfigurationManager, DEFAULT_CONFIG

__all__ = ['ConfigurationManager', 'DEFAULT_CONFIG']
