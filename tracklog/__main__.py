from .app import configure_logging, create_app
from .config import load_config


def main():
    # Dev mode, container uses gunicorn
    config = load_config()
    configure_logging(config.log_level)
    create_app(config).run(host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
