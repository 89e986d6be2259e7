"""
Controllers for GitLab Runner Provider.

This package contains the lifecycle controller that plans and applies
declared resources against GitLab.
"""

from .lifecycle import Action, LifecycleController, PlannedChange

__all__ = ["Action", "LifecycleController", "PlannedChange"]
