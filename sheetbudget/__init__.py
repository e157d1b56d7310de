"""
sheetbudget - a personal-finance record store backed by a Google Spreadsheet.

Each entity (expenses, income, recurring items, net-worth entries,
categories) lives in a fixed row range of the user's own budget workbook.

DESIGN PRINCIPLES:
1. Records are identified by stable IDs, never by row numbers
2. Deleting leaves a reusable hole; tables never shrink
3. Every public operation returns a result instead of raising
4. Every mutation is logged and stamps the datasets it changed
"""

from sheetbudget.orchestrator import BudgetService, create_budget_service

__version__ = "1.0.0"

__all__ = ["BudgetService", "create_budget_service"]
