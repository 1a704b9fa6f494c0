import uvicorn

from api.app import create_app
from config.settings import AppSettings

settings = AppSettings.from_env()
app = create_app(settings)


def main():
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
