"""
API Layer

RESPONSIBILITY: HTTP access to runs and replay sessions
MUST NOT: Interpret trace operations itself
"""
