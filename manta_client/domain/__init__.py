"""
Domain layer package housing stored-object types and wire payload schemas.
"""
