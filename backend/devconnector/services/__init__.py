# Services package init
"""
DevConnector Backend: Services Layer
=====================================

What:  Business rules between the routes (HTTP) and the models (persistence).
How:   Services take an AsyncSession per call, apply the rules, flush, and
       return response models. The session dependency commits.

Service Inventory:
    - TokenService:   issue/verify signed bearer tokens (PyJWT)
    - UserService:    registration, login, account lookup (bcrypt)
    - ProfileService: profile upsert, experience/education edits, account deletion
    - PostService:    posts, likes, comments
    - GitHubService:  repository lookup with retry and circuit breaker (httpx, tenacity)
    - avatar:         Gravatar URL for an email

TokenService, UserService and GitHubService are built from configuration by
the dependencies module; ProfileService and PostService are stateless
module-level singletons.
"""
