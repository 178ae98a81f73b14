"""Remote task status monitor.

Watches long-running operations that were delegated to a remote
task-execution service (for example removing a deployment across a fleet
of hosts), polls their status until a terminal outcome, and drives the
lifecycle state of the local entity the operation governs.
"""

__version__ = "0.1.0"
