"""
Circlenet services.

Storage-backed services for circles, invitations and connections, plus the
pure visibility and relationship evaluators they delegate to.
"""
