# fuelpos/permissions.py
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission, SAFE_METHODS


def _role(user):
    return getattr(user, "role", None)


def is_elevated(user):
    """Supervisors, admins and superusers see every attendant's records."""
    if not user or not user.is_authenticated:
        return False
    return getattr(user, "is_superuser", False) or _role(user) in ("supervisor", "admin")


def is_admin(user):
    if not user or not user.is_authenticated:
        return False
    return getattr(user, "is_superuser", False) or _role(user) == "admin"


def scope_queryset(queryset, user, owner_path="user"):
    """
    Visibility policy applied before every shift/sale/report read.

    Elevated roles see everything; anyone else only sees rows whose
    `owner_path` (e.g. "user" on Shift, "shift__user" on Sale) is themselves,
    whatever filters they asked for.
    """
    if is_elevated(user):
        return queryset
    return queryset.filter(**{owner_path: user})


def ensure_can_access_shift(shift, user):
    if is_elevated(user):
        return
    if shift.user_id != user.id:
        raise PermissionDenied("Access denied")


class IsAdminOrReadOnly(BasePermission):
    """Reads for any authenticated user, writes for admins only."""

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return is_admin(user)


class IsSupervisorOrAdmin(BasePermission):
    def has_permission(self, request, view):
        return is_elevated(getattr(request, "user", None))


def require_admin(user):
    """Service-level guard for registry writes, mirrors IsAdminOrReadOnly."""
    if not is_admin(user):
        raise PermissionDenied("Admin role required")
