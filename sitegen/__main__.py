import uvicorn

from sitegen.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "sitegen.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
