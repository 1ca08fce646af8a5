"""
Helpers for reading fields off the authenticated user dict.
"""


def get_user_id(user: dict) -> str:
    """User ID (token subject) of the authenticated caller."""
    return user.get("sub", "")