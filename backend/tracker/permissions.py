import logging

from rest_framework import permissions

logger = logging.getLogger(__name__)


class IsOwner(permissions.BasePermission):
    """
    Object-level check that the row belongs to the requesting user.

    Querysets are already scoped to the owner by ``OwnerScopedMixin``, so a
    foreign row normally answers 404 before this runs.
    """

    def has_object_permission(self, request, view, obj):
        is_owner = getattr(obj, "user_id", None) == request.user.id

        if not is_owner:
            logger.warning(
                "Object access denied - not the owner",
                extra={
                    "user_id": request.user.id,
                    "object_type": type(obj).__name__,
                    "object_id": getattr(obj, "pk", None),
                    "action": "owner_access_denied",
                    "component": "IsOwner",
                    "severity": "high",
                },
            )
        return is_owner
