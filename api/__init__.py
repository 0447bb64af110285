"""
FastAPI REST API for the Bookshelf service.

This package provides:
- User signup, profile and password management
- Book catalogue CRUD with title-derived slugs
- Consistency of the user <-> book relation across every mutation
- Request validation with one error reported per field
"""
