"""auth/ -- Authentication and session package for BuildTrack.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or tracker/, with one exception:
auth/dependencies.py imports fastapi because it is part of the FastAPI
dependency injection system.
api/ imports from auth/, not the other way around.
"""
