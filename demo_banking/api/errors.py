"""
Translation of domain errors into HTTP responses
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ..errors import BankingError, InternalError
from ..logging_config import log_action

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "validation_failure": 400,
    "unauthorized": 401,
    "not_found": 404,
    "conflict": 409,
    "internal": 500,
}


async def banking_error_handler(request: Request, exc: BankingError) -> JSONResponse:
    """Translate domain errors into HTTP responses; internal details stay in the log"""
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    if isinstance(exc, InternalError) or status_code == 500:
        log_action(logger, "error", exc.message, action="request_failed",
                   resource=request.url.path)
        body = {"code": "internal", "message": "Internal server error"}
    else:
        body = exc.to_dict()
    return JSONResponse(status_code=status_code, content={"detail": body})
