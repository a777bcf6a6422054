"""
SOKONOVA Seller Analytics

Main entry point for the seller analytics API.

    uvicorn sokonova_analytics.main:app
"""

from sokonova_analytics.serving.api import create_api_app

app = create_api_app()


if __name__ == "__main__":
    import uvicorn
    from sokonova_analytics.config import get_settings

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
