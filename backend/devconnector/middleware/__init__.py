# Middleware package init
"""
DevConnector Backend: Middleware Package
=========================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error body carry
    the same id. The logging middleware reads the user id that the Auth
    Gate stores on request.state.
"""
