"""
Read-only access to the local Firefox cookie store.

Used to fetch full article text from sites where the user already has a
browser session. Every failure degrades to "no cookies".
"""

import configparser
import logging
import shutil
import sqlite3
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class FirefoxCookieSource:
    """Looks up cookies for a host in the default Firefox profile."""

    def __init__(self, home: Path | None = None):
        self.firefox_dir = (home or Path.home()) / ".mozilla" / "firefox"

    def find_profile(self) -> Path | None:
        """Find the default profile directory, or any profile holding cookies."""
        if not self.firefox_dir.is_dir():
            return None

        profiles_ini = self.firefox_dir / "profiles.ini"
        if profiles_ini.exists():
            parser = configparser.ConfigParser()
            try:
                parser.read(profiles_ini, encoding="utf-8")
            except configparser.Error as e:
                logger.debug(f"Unreadable profiles.ini: {e}")
            else:
                for section in parser.sections():
                    if not section.startswith("Profile"):
                        continue
                    profile = parser[section]
                    if profile.get("Default") != "1" or not profile.get("Path"):
                        continue
                    path = Path(profile["Path"])
                    if profile.get("IsRelative", "1") == "1":
                        path = self.firefox_dir / path
                    if path.is_dir():
                        return path

        # Fallback: first profile directory with a cookie store
        for entry in sorted(self.firefox_dir.iterdir()):
            if entry.is_dir() and (entry / "cookies.sqlite").exists():
                return entry

        return None

    @staticmethod
    def _candidate_hosts(domain: str) -> list[str]:
        """Host values whose cookies apply to domain (itself and parent domains)."""
        labels = domain.lower().split(".")
        hosts = []
        for i in range(len(labels) - 1):
            suffix = ".".join(labels[i:])
            hosts.extend([suffix, "." + suffix])
        return hosts or [domain]

    def cookie_header(self, domain: str) -> str:
        """Return a Cookie header value for domain, or '' when unavailable."""
        profile = self.find_profile()
        if profile is None:
            logger.debug("No Firefox profile found")
            return ""

        cookies_db = profile / "cookies.sqlite"
        if not cookies_db.exists():
            logger.debug("Firefox cookies.sqlite not found")
            return ""

        hosts = self._candidate_hosts(domain)
        placeholders = ",".join("?" * len(hosts))

        # Firefox keeps the database locked, so query a private copy
        with tempfile.TemporaryDirectory(prefix="speedy-reader-") as tmp:
            copy = Path(tmp) / "cookies.sqlite"
            try:
                shutil.copy2(cookies_db, copy)
                wal = cookies_db.with_name("cookies.sqlite-wal")
                if wal.exists():
                    shutil.copy2(wal, copy.with_name("cookies.sqlite-wal"))
            except OSError as e:
                logger.debug(f"Failed to copy cookies database: {e}")
                return ""

            try:
                connection = sqlite3.connect(copy)
                try:
                    rows = connection.execute(
                        f"SELECT name, value FROM moz_cookies WHERE host IN ({placeholders})",
                        hosts,
                    ).fetchall()
                finally:
                    connection.close()
            except sqlite3.Error as e:
                logger.debug(f"Failed to read cookies database: {e}")
                return ""

        return "; ".join(f"{name}={value}" for name, value in rows)
