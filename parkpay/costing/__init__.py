"""
Module 'costing' (feature-first): écritures comptables, journal d'audit et rapports de recouvrement.
"""

from .dispatcher import HttpCostingDispatcher, LocalCostingDispatcher
from .schemas import CostingPayload
from .service import build_dashboard, build_report, process_payment

__all__ = [
    "HttpCostingDispatcher",
    "LocalCostingDispatcher",
    "CostingPayload",
    "build_dashboard",
    "build_report",
    "process_payment",
]
