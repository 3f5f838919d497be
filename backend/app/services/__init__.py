# Services package init
"""
BranchRelay Backend — Services Layer
======================================

What:  Business logic between routes (HTTP) and the two providers (S3, Sheets).

Service Inventory:
    - content_type:    Sniffs image MIME type / extension from base64 headers
    - StorageService:  Uploads branch images to S3; lists and inspects them
    - SheetsService:   Appends branch rows to Google Sheets
    - BranchService:   Orchestrates validate → upload → append for a submission
"""
