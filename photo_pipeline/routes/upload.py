from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from photo_pipeline.models.upload import ErrorResponse, UploadTokenResponse
from photo_pipeline.routes.deps import get_issuer_config
from photo_pipeline.services.errors import PipelineError
from photo_pipeline.services.upload_tokens import issue_upload_grant
from photo_pipeline.validators.upload import parse_upload_request

router = APIRouter(prefix="/api", tags=["upload"])


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/generate-upload-token",
    response_model=UploadTokenResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_upload_token(request: Request):
    logger.info("Upload token requested")
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    try:
        upload_request = parse_upload_request(payload)
        config = get_issuer_config(request)
        grant = issue_upload_grant(upload_request, config)
    except PipelineError as exc:
        log = logger.warning if exc.status_code < 500 else logger.error
        log("Upload token rejected status={} error={} message={}", exc.status_code, exc.error, str(exc))
        return _error_response(exc.status_code, exc.error, str(exc))
    except Exception as exc:
        logger.exception("Upload token generation failed error={}", str(exc))
        return _error_response(500, "Internal server error", str(exc) or "Unknown error occurred")

    return UploadTokenResponse.from_grant(grant)
