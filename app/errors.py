from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class LifecycleError(Exception):
    """Base class for rejected lifecycle operations.

    A rejected operation never mutates the store and never emits a
    notification.
    """

    code = "lifecycle_error"
    status_code = 400

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(LifecycleError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found",
            {"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransitionError(LifecycleError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, entity: str, entity_id: str, current, target):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            f"Cannot move {entity} from {current_value} to {target_value}",
            {
                "entity": entity,
                "id": entity_id,
                "current": current_value,
                "target": target_value,
            },
        )


class DeadlineAlreadyPassedError(LifecycleError):
    code = "deadline_passed"
    status_code = 409

    def __init__(self, entity: str, entity_id: str, deadline):
        super().__init__(
            f"Deadline for {entity} has already passed",
            {"entity": entity, "id": entity_id, "deadline": deadline.isoformat()},
        )


class ConfigOutOfRangeError(LifecycleError):
    code = "config_out_of_range"
    status_code = 422

    def __init__(self, field: str, value, minimum, maximum):
        super().__init__(
            f"{field} must be between {minimum} and {maximum}",
            {"field": field, "value": value, "min": minimum, "max": maximum},
        )


class PermissionDeniedError(LifecycleError):
    code = "permission_denied"
    status_code = 403


class InvalidRequestError(LifecycleError):
    code = "invalid_request"
    status_code = 400


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(LifecycleError)
    async def lifecycle_exception_handler(request: Request, exc: LifecycleError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
