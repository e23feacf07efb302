"""admin/ -- Moderator aggregation and deletion for Alumni Connect.

Layer rule: admin/ imports from auth/, core/, and kv/. It does NOT import from api/.
"""
