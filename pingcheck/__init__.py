"""pingcheck – scriptable ICMP reachability probe with a structured verdict."""

__version__ = "0.1.0"
