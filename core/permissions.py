from rest_framework.permissions import BasePermission


# ---- Helper functions -------------------------------------------------


def user_is_system_admin(user) -> bool:
    """
    Global/system manager flag based on user.role.
    Superusers and users with role 'admin' manage every organization.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return False

    if getattr(user, "is_superuser", False):
        return True

    return getattr(user, "role", None) == "admin"


def user_can_manage_organization(user, organization_id) -> bool:
    """
    Organization staff are the users attached to it; system admins may
    act on any organization.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return False

    if user_is_system_admin(user):
        return True

    return (
        organization_id is not None
        and getattr(user, "organization_id", None) is not None
        and str(user.organization_id) == str(organization_id)
    )


def user_can_manage_event(user, event) -> bool:
    if event is None:
        return False
    return user_can_manage_organization(user, event.organization_id)


# ---- Permission classes -----------------------------------------------


class IsOrganizationStaff(BasePermission):
    """
    Authenticated users attached to an organization (or system admins).
    Object-level checks are done by the views with the helpers above.
    """
    message = "You must belong to an organization to use this endpoint."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user_is_system_admin(user) or user.organization_id is not None
