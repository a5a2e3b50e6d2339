# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides metrics and monitoring for the voting power engine.
"""

from .metrics import metrics_registry, update_metrics

__all__ = ['metrics_registry', 'update_metrics']
