"""IP to country enrichment for access log entries.

Wraps a MaxMind GeoIP2 / GeoLite2 database. Lookups never raise: private,
unknown or malformed addresses, a failing reader and a node started without a
database all resolve to ``"Unknown"``.
"""

import logging

from geoip2.database import Reader
from geoip2.errors import AddressNotFoundError

from edge.schemas import UNKNOWN_COUNTRY

__all__ = ["GeoLocator"]

logger = logging.getLogger(__name__)


class GeoLocator:
    """Resolve a client IP to an ISO country code."""

    def __init__(self, reader: Reader | None = None):
        self._reader = reader
        self._use_city = False
        if reader is not None:
            # City databases reject country() queries
            self._use_city = "City" in reader.metadata().database_type

    @classmethod
    def from_path(cls, path: str | None) -> "GeoLocator":
        if not path:
            logger.info("No GeoIP database configured; countries will be reported as %s", UNKNOWN_COUNTRY)
            return cls()
        try:
            reader = Reader(path)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load GeoIP database {path}: {e}")
            return cls()
        logger.debug("GeoIP database path: %s", path)
        return cls(reader)

    def country(self, ip: str | None) -> str:
        if self._reader is None or not ip:
            return UNKNOWN_COUNTRY
        try:
            response = self._reader.city(ip) if self._use_city else self._reader.country(ip)
        except AddressNotFoundError:
            return UNKNOWN_COUNTRY
        except ValueError:
            logger.debug("Invalid IP address for geo lookup: %s", ip)
            return UNKNOWN_COUNTRY
        except Exception as e:
            # maxminddb raises InvalidDatabaseError (a RuntimeError) on corrupt data
            logger.warning(f"GeoIP lookup failed for {ip}: {e}")
            return UNKNOWN_COUNTRY
        return response.country.iso_code or UNKNOWN_COUNTRY

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
