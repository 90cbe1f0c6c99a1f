from fastapi import HTTPException

from roombooking.api.v1.schemas import ErrorSchema
from roombooking.application.exceptions import BookingError

STATUS_BY_CODE = {
    "not_found": 404,
    "invalid_state": 409,
    "not_available": 409,
    "validation": 400,
    "external_sync_failure": 502,
    "persistence_verification": 500,
}


def http_error(e: BookingError) -> HTTPException:
    body = ErrorSchema(error=e.code, message=e.message, details=e.details)
    return HTTPException(status_code=STATUS_BY_CODE.get(e.code, 500), detail=body.model_dump(mode="json"))
