"""auth/ -- Authentication core for Summit Auth.

Layer rule: auth/ imports only stdlib + third-party libraries (plus fastapi in
auth/dependencies.py). It does NOT import from api/ or core/ -- configuration
values are injected by the API lifespan. api/ imports from auth/, not the
other way around.
"""
