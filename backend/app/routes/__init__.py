# Routes package init
"""
BranchRelay Backend — API Routes Package
==========================================

Route Inventory:
    - branches.py: POST /api/branches                     (submit branch + images)
                   GET  /api/branches/{branch_id}/images  (list stored images)
                   GET  /api/images/metadata              (S3 metadata lookup)
    - health.py:   GET  /health                           (liveness check)

Design Principle:
    Routes are THIN: parse the request, call a service, return a response
    model. Business logic and provider calls live in app/services.
"""
