# Middleware package init
"""
BranchRelay Backend — Middleware Package
==========================================

Middleware Chain (order matters!):
    Request → [Body Size] → [Request ID] → [Logging] → [CORS] → Route Handler

    1. Body Size FIRST: reject oversized uploads before anything reads them
    2. Request ID: correlation ID for every log line of the request
    3. Logging: method, path, status and duration with the request ID
    4. CORS: applied by FastAPI's CORSMiddleware (handles preflight)
"""
