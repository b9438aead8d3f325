"""
Launchpad Monitor - keep GroundControl Launchpads healthy without reset storms.

This package polls the GroundControl fleet, tracks how long each Launchpad
has been unhealthy, and issues Workspace ONE soft resets once a condition
has persisted long enough.

Features:
- Configuration via YAML with environment variable overrides
- Docker secrets support for API credentials
- Structured logging (JSON for production, text for development)
- Persistent per-device debounce state that survives restarts
- One batched remediation call per cycle
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
