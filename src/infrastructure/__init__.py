"""Infrastructure for the variant analysis sweep.

This module contains the components the sweep tooling runs on:
- Configuration loading (YAML files under ``config/``)
- Azure ML workspace, compute, data and job helpers
- MLflow tracking setup and retry logic
- The sweep platform interface used by result collection
"""

# Export configuration APIs; platform modules are imported directly
from infrastructure.config import *
