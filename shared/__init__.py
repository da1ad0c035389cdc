"""
Picture Tales - shared infrastructure.

Database access and blob storage used by the story pipeline service.
"""
