"""Map operation results to JSON responses."""

from fastapi import status
from fastapi.responses import JSONResponse

from chorecoin.core.errors import ErrorCode, OperationResult


_STATUS_BY_CODE = {
    ErrorCode.ERR_VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ERR_INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ERR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def status_for(result: OperationResult, success_status: int = status.HTTP_200_OK) -> int:
    if result.success:
        return success_status
    return _STATUS_BY_CODE.get(result.error_code or "", status.HTTP_400_BAD_REQUEST)


def result_response(result: OperationResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Render an OperationResult with a status code matching its error kind."""
    return JSONResponse(
        content=result.model_dump(mode="json", exclude_none=True),
        status_code=status_for(result, success_status),
    )
