import http
from typing import List, Dict

from pydantic import ValidationError as PydanticValidationError

from context_manager.context import context_user_data
from logger import logger
from schema.base import GenericResponseModel
from utils.exceptions import (
    InternalError,
    NotFound,
    ProviderUnavailable,
    RateLayerError,
    ValidationError,
)


# format the validation errors into our desired output
def format_validation_errors(errors: List[dict]) -> Dict:
    formatted_errors = {}

    for error in errors:
        # Extract the field name and error message
        field = str(error["loc"][-1]) if len(error["loc"]) > 0 else "Unknown"
        message = error["msg"]

        if field in formatted_errors:
            formatted_errors[field].append(message)
        else:
            formatted_errors[field] = [message]

    return formatted_errors


def parse_model(model_class, data):
    """Build a pydantic model from raw input, raising our ValidationError on bad shape."""
    if isinstance(data, model_class):
        return data

    try:
        return model_class.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(fields=format_validation_errors(exc.errors())) from exc


_STATUS_CODES = {
    ValidationError: http.HTTPStatus.UNPROCESSABLE_ENTITY,
    NotFound: http.HTTPStatus.NOT_FOUND,
    ProviderUnavailable: http.HTTPStatus.SERVICE_UNAVAILABLE,
}


def build_error_response(exc: Exception) -> GenericResponseModel:
    """Translate a layer error into the generic response shape used by the API modules."""
    if isinstance(exc, ValidationError):
        return GenericResponseModel(
            status_code=_STATUS_CODES[ValidationError],
            message=exc.message,
            data={"fields": exc.fields},
        )

    if isinstance(exc, ProviderUnavailable):
        logger.error(
            extra=context_user_data.get(),
            msg="Courier {} unavailable: {!r}".format(exc.courier, exc.detail),
        )
        return GenericResponseModel(
            status_code=_STATUS_CODES[ProviderUnavailable],
            message=exc.message,
            data={"courier": exc.courier},
        )

    if isinstance(exc, RateLayerError) and not isinstance(exc, InternalError):
        return GenericResponseModel(
            status_code=_STATUS_CODES.get(type(exc), http.HTTPStatus.BAD_REQUEST),
            message=exc.message,
        )

    logger.exception(
        extra=context_user_data.get(),
        msg="Internal server error: {}".format(str(exc)),
    )
    return GenericResponseModel(
        status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
        message="An internal server error occurred. Please try again later.",
    )
