"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from tupconnect.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Environment: {settings.environment.value}")
    print(f"Gemini API key configured: {'yes' if settings.gemini.has_api_key else 'NO'}")
    print(f"Auto-reload: {'Enabled' if settings.debug else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "tupconnect.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_dirs=["tupconnect", "ai", "config"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
