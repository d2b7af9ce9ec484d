import os


def _split_origins(raw: str) -> list[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


class Config:
    """
    Runtime settings. Defaults mirror the environment variables read by load_config().
    """

    def __init__(
        self,
        store_backend="sqlite",
        db_path="tracklog.sqlite3",
        flush_password="flush2025",
        cors_allow_origins=None,
        timezone="Europe/Berlin",
        geoip_db_path="/geoip/GeoLite2-Country.mmdb",
        list_page_size=1000,
        flush_workers=16,
        log_level="INFO",
    ):
        self.store_backend = store_backend
        self.db_path = db_path
        self.flush_password = flush_password
        if cors_allow_origins is None:
            cors_allow_origins = [
                "https://dbraun1991.github.io",
                "http://localhost",
                "http://127.0.0.1",
                "null",
            ]
        self.cors_allow_origins = list(cors_allow_origins)
        self.timezone = timezone
        self.geoip_db_path = geoip_db_path
        self.list_page_size = list_page_size
        self.flush_workers = flush_workers
        self.log_level = log_level


def load_config(environ=None) -> Config:
    env = os.environ if environ is None else environ
    defaults = Config()

    origins = env.get("CORS_ALLOW_ORIGINS")
    return Config(
        store_backend=env.get("TRACKLOG_STORE", defaults.store_backend).strip().lower(),
        db_path=env.get("TRACKLOG_DB", defaults.db_path),
        flush_password=env.get("TRACKLOG_FLUSH_PASSWORD", defaults.flush_password),
        cors_allow_origins=_split_origins(origins) if origins is not None else None,
        timezone=env.get("TRACKLOG_TIMEZONE", defaults.timezone),
        geoip_db_path=env.get("GEOIP_DB_PATH", defaults.geoip_db_path),
        list_page_size=int(env.get("TRACKLOG_LIST_PAGE_SIZE", defaults.list_page_size)),
        flush_workers=int(env.get("TRACKLOG_FLUSH_WORKERS", defaults.flush_workers)),
        log_level=env.get("TRACKLOG_LOG_LEVEL", defaults.log_level).upper(),
    )
