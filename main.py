"""
User Management API
Application entry point.
"""

from usermanager.application import create_app, settings

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_config=None,  # Use our custom logging
    )
