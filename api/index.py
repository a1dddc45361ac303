"""Vercel serverless entry point wrapping the loan ledger FastAPI app via Mangum."""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mangum import Mangum
from loan_ledger.api.main import app

handler = Mangum(app, lifespan="off")
