"""
Application-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere.

Usage:
    from siteledger.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("Name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's scope.

    Used for BOTH genuinely missing records AND records that belong to an
    organization outside the caller's accessible set. A 403 would confirm
    the record exists; a 404 does not.

    Args:
        resource: Human-readable model name (e.g. "Project", "Organization").
        resource_id: The PK that was looked up. Logged, not returned.
        organization_id: Optional scope that was enforced. Debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        organization_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.organization_id = organization_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if organization_id is not None:
            msg += f" (organization={organization_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails a business rule in the service layer.

    Maps to HTTP 400. No write has happened when this is raised.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class PermissionDeniedError(Exception):
    """Raised when the caller's role does not allow the action.

    Maps to HTTP 403. Only raised for actions on records the caller can
    already see; invisible records raise NotFoundError instead.

    Args:
        message: Human-readable reason.
        permission: The permission tag that was missing, if any.
    """

    def __init__(self, message: str = "Permission denied", permission: str | None = None) -> None:
        self.permission = permission
        super().__init__(message)
