"""Utility functions for running crypto operations."""

from .offload import run_in_worker

__all__ = ["run_in_worker"]
