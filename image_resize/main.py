from typing import Optional

from fastapi import FastAPI

from .api.images import resized_router, router as images_router
from .api.routes_health import router as health_router
from .core.config import Settings, settings as default_settings
from .core.creator import ImageCreator
from .core.image_url import ImageUrlBuilder
from .core.resize_metrics import ResizeMetrics


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; raises ConfigurationError on unusable settings."""
    settings = settings or default_settings
    metrics = ResizeMetrics()

    app = FastAPI(title="Image Resize", description="On-demand image resize proxy")
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.creator = ImageCreator(settings, metrics=metrics)
    app.state.url_builder = ImageUrlBuilder(settings)

    app.include_router(health_router)
    app.include_router(images_router)
    app.include_router(resized_router, prefix="/" + settings.RESIZED_BASE_DIR.strip("/"))
    return app


app = create_app()
