"""Named pages and views, and which of them a role may open.

Pages are the top level (public home, login, register, the signed-in
app).  Views are the screens inside the app.  Administrators only get
the admin dashboard and their profile; learners get everything except
the admin dashboard.
"""

from __future__ import annotations

from enum import Enum

from app.models.user import Role


class Page(str, Enum):
    HOME = "home"
    LOGIN = "login"
    REGISTER = "register"
    APP = "app"


class View(str, Enum):
    DASHBOARD = "dashboard"
    COURSES = "courses"
    COURSE = "course"
    CERTIFICATE = "certificate"
    LEADERBOARD = "leaderboard"
    RESOURCES = "resources"
    PROFILE = "profile"
    ADMIN = "admin"


_SHARED_VIEWS = frozenset({View.PROFILE})


def landing_view(role: Role) -> View:
    return View.ADMIN if role is Role.ADMIN else View.DASHBOARD


def allowed_views(role: Role) -> list[View]:
    if role is Role.ADMIN:
        return [View.ADMIN, View.PROFILE]
    return [v for v in View if v is not View.ADMIN]


def resolve_view(role: Role, requested: View | None) -> View:
    """The view to show for ``requested``; falls back to the landing view."""
    if requested is None:
        return landing_view(role)
    if requested in _SHARED_VIEWS:
        return requested
    if requested in allowed_views(role):
        return requested
    return landing_view(role)


def resolve_page(signed_in: bool, requested: Page | None) -> Page:
    if signed_in:
        return Page.APP
    if requested is None or requested is Page.APP:
        return Page.HOME if requested is None else Page.LOGIN
    return requested
