"""
Library finder services.

This package contains:
- Library directory access (MongoDB)
- Library combination search
- Optimal library set orchestration
- Title search
"""
