"""
marketplace.domain -- Canonical enumerations, request context and pure
access rules.

Nothing in here should import from other marketplace sub-packages (only
stdlib).
"""
