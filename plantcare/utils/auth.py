"""
Authentication helpers for the JSON API.

Sign-in itself is handled elsewhere; these helpers only read the user that the
session already carries and guard routes with @require_auth.
"""

from __future__ import annotations
from functools import wraps
from typing import Optional, Dict, Any
from flask import session, jsonify, g
from ..services import supabase_client


SESSION_USER_KEY = "user"
SESSION_ACCESS_TOKEN_KEY = "access_token"
SESSION_REFRESH_TOKEN_KEY = "refresh_token"


def get_current_user() -> Optional[Dict[str, Any]]:
    """
    Get currently logged-in user from session.

    Returns:
        User dict with id, email, etc. or None if not logged in
    """
    if hasattr(g, 'user'):
        return g.user

    access_token = session.get(SESSION_ACCESS_TOKEN_KEY)
    refresh_token = session.get(SESSION_REFRESH_TOKEN_KEY)

    if not access_token:
        g.user = None
        return None

    user = supabase_client.verify_session(access_token, refresh_token)
    if not user:
        clear_session()
        g.user = None
        return None

    g.user = user
    return user


def get_current_user_id() -> Optional[str]:
    """
    Get current user's ID.

    Returns:
        User UUID or None if not logged in
    """
    user = get_current_user()
    return user.get("id") if user else None


def clear_session() -> None:
    """Clear user session data."""
    session.pop(SESSION_USER_KEY, None)
    session.pop(SESSION_ACCESS_TOKEN_KEY, None)
    session.pop(SESSION_REFRESH_TOKEN_KEY, None)


def is_authenticated() -> bool:
    """Check if user is currently authenticated."""
    return get_current_user() is not None


def require_auth(f):
    """
    Decorator to require authentication for an API route.

    Returns a 401 JSON error when no user is signed in.

    Usage:
        @bp.route('/recommendations')
        @require_auth
        def list_recommendations():
            user_id = get_current_user_id()
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"success": False, "error": "Authentication required"}), 401

        return f(*args, **kwargs)

    return decorated_function
