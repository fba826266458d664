"""Application layer package."""

from .report_service import run_report

__all__ = ["run_report"]
