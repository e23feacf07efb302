"""auth/ -- Authentication and authorization package for Alumni Connect.

Layer rule: auth/ imports only stdlib + third-party libraries, core/, and kv/.
It does NOT import from api/ or admin/.
api/ and admin/ import from auth/, not the other way around.
"""
