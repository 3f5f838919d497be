"""
BranchRelay Backend — Application Package Initializer
=======================================================

What: Marks the `app` directory as a Python package.
Who:  Used by uvicorn (`uvicorn app.main:app`), pytest and the console script.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    BranchService (Orchestration)    │  ← validate → upload → append
    ├─────────────────────────────────────┤
    │  StorageService   │  SheetsService  │  ← boto3 / googleapiclient
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
