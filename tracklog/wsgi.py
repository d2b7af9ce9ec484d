"""
gunicorn entry point:
  gunicorn -b 0.0.0.0:8000 tracklog.wsgi:app
"""
from .app import configure_logging, create_app
from .config import load_config

config = load_config()
configure_logging(config.log_level)
app = create_app(config)
