"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the sales domain models used by ``sales_reports``.
"""

from .sales import Base, SrCustomer, SrEmployee, SrReportDispatch, SrTransaction

__all__ = [
    "Base",
    "SrCustomer",
    "SrEmployee",
    "SrReportDispatch",
    "SrTransaction",
]
