# Routes package init
"""
DevConnector Backend: API Routes Package
=========================================

Route Inventory:
    - users.py:    POST /api/users                  (register)
    - auth.py:     GET/POST /api/auth               (current user, login)
    - profile.py:  /api/profile/...                 (profiles, entries, GitHub)
    - posts.py:    /api/posts/...                   (posts, likes, comments)
    - health.py:   GET /, GET /health

Routes stay thin: read the request, call one service method, return its
result. Errors propagate as DevConnectorError subclasses to the handlers
registered in main.py.
"""
