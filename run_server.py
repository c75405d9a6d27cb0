"""
Wrapper script for running the server with profiling support.

This script is used by Scalene to profile the relay.
"""

if __name__ == "__main__":
    import uvicorn

    from relay.settings import app_settings

    uvicorn.run(
        "relay:application",
        factory=True,
        host=app_settings.HTTP_HOST,
        port=app_settings.HTTP_PORT,
    )
