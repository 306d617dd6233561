"""Utility modules for the automatic camera calibrator."""

from autocalib.utils.logging_utils import setup_logging

__all__ = ["setup_logging"]
