import logging
import os
import threading

import geoip2.database
import geoip2.errors
import maxminddb

logger = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "UNK"


class CountryLookup:
    """
    Lazily opened MaxMind country reader.
    A missing database file is not an error; every lookup then returns "UNK".
    """

    def __init__(self, db_path: str | None):
        self.db_path = db_path
        self._reader = None
        self._checked = False
        self._lock = threading.Lock()

    def _get_reader(self):
        if self._checked:
            return self._reader
        with self._lock:
            if not self._checked:
                if self.db_path and os.path.exists(self.db_path):
                    try:
                        self._reader = geoip2.database.Reader(self.db_path)
                        logger.info("Loaded GeoIP database %s", self.db_path)
                    except (OSError, maxminddb.InvalidDatabaseError):
                        logger.exception("Unreadable GeoIP database %s; countries will be %s", self.db_path, UNKNOWN_COUNTRY)
                        self._reader = None
                else:
                    logger.info("No GeoIP database at %s; countries will be %s", self.db_path, UNKNOWN_COUNTRY)
                self._checked = True
        return self._reader

    def country_for_ip(self, raw_ip: str | None) -> str:
        """
        ISO country code for `raw_ip`, or "UNK".
        Only the 2-letter code is kept.
        """
        if not raw_ip:
            return UNKNOWN_COUNTRY
        reader = self._get_reader()
        if reader is None:
            return UNKNOWN_COUNTRY
        try:
            resp = reader.country(raw_ip)
            code = resp.country.iso_code or resp.registered_country.iso_code
            return code if code else UNKNOWN_COUNTRY
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return UNKNOWN_COUNTRY

    def close(self):
        with self._lock:
            if self._reader is not None:
                self._reader.close()
            self._reader = None
            self._checked = False
