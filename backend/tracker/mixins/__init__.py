from .owner_scoped import OwnerScopedMixin
from .service_exception_handler import ServiceExceptionHandlerMixin

__all__ = ["OwnerScopedMixin", "ServiceExceptionHandlerMixin"]
