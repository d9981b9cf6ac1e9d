"""auth/ -- Authentication and authorization package for the Oil Union API.

Layer rule: auth/ imports only core/ + third-party libraries.
It does NOT import from api/, registry/, or services/.
api/ and services/ import from auth/, not the other way around.
"""
