"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON configuration files.
- Enforcement of schema constraints and bounds on execution settings.
- Resolution of the thread budget against the machine's CPUs.
"""

from .config_manager import ConfigurationManager

__all__ = ['ConfigurationManager']
