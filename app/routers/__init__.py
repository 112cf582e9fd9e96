"""
HRMS Payroll - Routers Package

FastAPI route handlers.

Routers:
- payroll: Salary slips, pay components, overtime and salary advances
- tax: Tax slabs, exemptions, minimum limits and tax previews
"""

from app.routers import payroll, tax

__all__ = ["payroll", "tax"]
