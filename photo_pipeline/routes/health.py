from fastapi import APIRouter, Request

from photo_pipeline.config import IssuerConfig, ProcessorConfig

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    state = request.app.state
    return {
        "status": "ok",
        "issuer_configured": isinstance(getattr(state, "issuer_config", None), IssuerConfig),
        "processor_configured": isinstance(getattr(state, "processor_config", None), ProcessorConfig),
    }
