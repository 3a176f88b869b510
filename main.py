"""Main application entry point."""

from teamcal.config.environment import IS_PRODUCTION_ENVIRONMENT
from teamcal.api.app import app

if __name__ == "__main__":
    import uvicorn
    if not IS_PRODUCTION_ENVIRONMENT:
        # Development mode - string reference so reload can re-import the app
        uvicorn.run(
            "teamcal.api.app:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            log_level="debug"
        )
    else:
        # Production mode - use string reference for proper multi-worker support
        uvicorn.run(
            "teamcal.api.app:app",
            host="0.0.0.0",
            port=8000,
            reload=False,
            workers=4,
            log_level="info",
            proxy_headers=True,
            forwarded_allow_ips="*"
        )
