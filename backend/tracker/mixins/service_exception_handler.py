"""
Service exception handler mixin.

Services raise plain Django and Python exceptions; views answer with DRF
ones. ``handle_service_call`` is the single place where one becomes the
other, and every failure is logged once with the calling view's context.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import APIException
from rest_framework.exceptions import PermissionDenied as DRFPermissionDenied
from rest_framework.exceptions import ValidationError as DRFValidationError

logger = logging.getLogger(__name__)


def _validation_detail(exc):
    return exc.message_dict if hasattr(exc, "error_dict") else exc.messages


class ServiceExceptionHandlerMixin:
    """
    Mixin for views that delegate to services.

    ==========================  ===========================  =======
    raised by the service       answered with                status
    ==========================  ===========================  =======
    DRF ``APIException``        itself                       as is
    Django ``ValidationError``  DRF ``ValidationError``      400
    ``PermissionError``         ``PermissionDenied``         403
    anything else               generic ``APIException``     500
    ==========================  ===========================  =======

    Usage:
        budget = self.handle_service_call(
            self.budget_service.create_budget, user, data, correlation_id=cid
        )
    """

    def _log_service_failure(self, service_call, exc, action, level, severity, **log_kwargs):
        request = getattr(self, "request", None)
        qualname = getattr(service_call, "__qualname__", repr(service_call))
        logger.log(
            level,
            "Service call failed: %s",
            action,
            extra={
                "service_name": qualname.split(".")[0],
                "method_name": getattr(service_call, "__name__", str(service_call)),
                "user_id": getattr(getattr(request, "user", None), "id", None),
                "correlation_id": getattr(request, "correlation_id", None),
                "error_type": type(exc).__name__,
                "error_message": str(exc),
                "action": action,
                "component": "ServiceExceptionHandlerMixin",
                "severity": severity,
            },
            **log_kwargs,
        )

    def handle_service_call(self, service_call, *args, **kwargs):
        """
        Run ``service_call(*args, **kwargs)`` and return its result.

        Raises:
            APIException: Every failure, translated per the class table
        """
        try:
            return service_call(*args, **kwargs)

        except APIException as exc:
            client_error = exc.status_code < 500
            self._log_service_failure(
                service_call,
                exc,
                "service_api_exception",
                logging.WARNING if client_error else logging.ERROR,
                "medium" if client_error else "high",
            )
            raise

        except DjangoValidationError as exc:
            self._log_service_failure(
                service_call, exc, "service_validation_error", logging.WARNING, "medium"
            )
            raise DRFValidationError(_validation_detail(exc)) from exc

        except PermissionError as exc:
            self._log_service_failure(
                service_call, exc, "service_permission_denied", logging.WARNING, "high"
            )
            raise DRFPermissionDenied(str(exc)) from exc

        except Exception as exc:
            self._log_service_failure(
                service_call,
                exc,
                "service_unexpected_error",
                logging.ERROR,
                "critical",
                exc_info=True,
            )
            raise APIException(detail="Service operation failed", code="service_error") from exc
