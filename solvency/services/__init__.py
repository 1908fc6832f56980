"""Service modules"""
from .engine import RiskEngine
from .refresher import AccountView, Refresher

__all__ = ["RiskEngine", "Refresher", "AccountView"]
