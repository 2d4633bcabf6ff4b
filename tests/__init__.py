"""
Mind Map Portal Test Suite

Regression testing for the Mind Map Portal API.

Test Categories:
- Auth: password hashing, applications, login, approval
- Tokens / access control: JWT handling and the visibility rules
- Database: store queries, constraints and cascades
- Routes: /auth, /mindmaps, /admin, /generate through TestClient
- App: health, CORS, error envelope, safe logging

Smoke test:
    python run.py test

Run all tests:
    pytest tests/

Run specific test file:
    pytest tests/test_mindmap_routes.py
"""

__version__ = "1.0.0"
