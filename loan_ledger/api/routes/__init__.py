"""
API route modules.

Contains FastAPI routers for different resource types.
"""

from loan_ledger.api.routes import loans

__all__ = ["loans"]
