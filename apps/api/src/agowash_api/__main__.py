import uvicorn

from .core.settings import settings


def main() -> None:
    uvicorn.run(
        "agowash_api.app:create_app",
        factory=True,
        reload=settings.environment == "development",
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds),
    )


if __name__ == "__main__":
    main()
