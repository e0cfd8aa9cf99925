from .app import create_app
from .config import AppConfig

config = AppConfig.from_env()
app = create_app(config)


def main():
    app.run(host=config.host, port=config.port)


if __name__ == "__main__":
    main()
