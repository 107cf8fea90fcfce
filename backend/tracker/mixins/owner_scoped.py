"""
Mixin scoping view querysets and writes to the requesting user.
"""

import logging

logger = logging.getLogger(__name__)


class OwnerScopedMixin:
    """
    Restrict ``queryset`` to rows owned by ``request.user``.

    Rows of other users are invisible: retrieving them answers 404.
    Also exposes the request's correlation id for service calls.
    """

    def get_queryset(self):
        queryset = super().get_queryset().filter(user=self.request.user)
        logger.debug(
            "Queryset scoped to owner",
            extra={
                "user_id": self.request.user.id,
                "model": queryset.model.__name__,
                "action": "owner_scope_applied",
                "component": "OwnerScopedMixin",
            },
        )
        return queryset

    @property
    def correlation_id(self):
        return getattr(self.request, "correlation_id", "")
