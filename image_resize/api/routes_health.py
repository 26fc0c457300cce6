from fastapi import APIRouter, Request, status

router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict:
    return {"status": "ok"}


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
async def detailed_health(request: Request) -> dict:
    """Health plus resize outcome counters since startup."""
    metrics = request.app.state.metrics
    settings = request.app.state.settings
    return {
        "status": "ok",
        "webroot": str(settings.WEBROOT),
        "webroot_exists": settings.WEBROOT.is_dir(),
        "resized": metrics.snapshot(),
    }
