"""Deployment planning: group diffs, instance-count suggestions, staged stops, scheduling and autodeployer tracking."""

__version__ = "0.1.0"