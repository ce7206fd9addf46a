"""
FastAPI RESTful API for the Bookshore library finder.

This module provides a REST API for:
- Optimal library set calculation for up to three ISBNs
- Book search by title
- Service health
"""
