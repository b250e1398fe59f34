"""
Investment plans domain
"""
from app.core.plans.models import InvestmentPlan

__all__ = ["InvestmentPlan"]
