"""graphite_bridge: export periodic metric samples to a Graphite collector."""

__version__ = "0.1.0"
