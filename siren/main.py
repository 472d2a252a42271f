"""Main application entry point."""

from siren.core.settings import get_settings
from siren.factory import create_app

# Create application instance
settings = get_settings()
app = create_app(settings)

# For development server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "siren.main:app",
        host="0.0.0.0",  # nosec B104 - Development server binding is intentional
        port=8000,
        reload=settings.app_env == "local",
        log_level=settings.log_level.lower(),
    )
