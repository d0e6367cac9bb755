"""Prompt templates rendered with string.Template ($var syntax)."""

from .loader import render

__all__ = ["render"]
