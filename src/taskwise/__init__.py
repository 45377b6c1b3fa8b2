"""taskwise: personal task planner with a dependency-aware scheduling engine."""

__version__ = "0.1.0"
