"""OS probes used by the gating and health checks."""
