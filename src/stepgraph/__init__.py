"""StepGraph - traversal engine for step flow graphs.

Enumerates paths and detects loops over graphs of steps joined by
success/failure connections, with cooperative cancellation and batched
result delivery.
"""

__version__ = "0.1.0"
