"""Shared helpers."""

from .log_json import JsonLogger

__all__ = ["JsonLogger"]
