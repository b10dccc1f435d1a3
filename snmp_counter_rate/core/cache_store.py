"""
Cache Store - persisted samples between check runs.

Keeps one YAML record of the last sample per (target, OID) pair.
Reads are fail-open: any problem with the record means "no history".
Writes replace the record atomically.
"""

import hashlib
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from .models import Sample


logger = logging.getLogger(__name__)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]+")


class CacheWriteError(Exception):
    """Raised when a sample could not be persisted."""


class CacheStore:
    """
    File-based store for the last sample of each monitored counter.

    The file name combines a readable slug of the target and OID with a
    digest of both, so distinct identities never share a record.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def path_for(self, target: str, oid: str) -> Path:
        """Get the record path for a target and OID."""
        digest = hashlib.sha1(f"{target}\0{oid}".encode("utf-8")).hexdigest()
        slug = _UNSAFE_CHARS.sub("_", f"{target}_{oid}").strip("_")[:80]
        return self.directory / f"{slug}_{digest}.yaml"

    def load(self, target: str, oid: str) -> Optional[Sample]:
        """Load the previous sample, or None if there is no usable record."""
        path = self.path_for(target, oid)

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.debug(f"No cached sample at {path}")
            return None
        except (
            OSError,
            UnicodeDecodeError,
            yaml.YAMLError,
            # Out-of-range implicit timestamps and deeply nested documents
            ValueError,
            RecursionError,
        ) as e:
            logger.debug(f"Ignoring unreadable cache {path}: {e}")
            return None

        sample = self._parse_record(data)
        if sample is None:
            logger.debug(f"Ignoring malformed cache {path}")
        return sample

    def save(self, target: str, oid: str, sample: Sample):
        """Persist a sample, fully replacing any previous record."""
        path = self.path_for(target, oid)
        record = {
            "target": target,
            "oid": oid,
            **sample.to_dict(),
        }

        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.directory,
                prefix=f".{path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                yaml.safe_dump(record, f, default_flow_style=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except (OSError, yaml.YAMLError) as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise CacheWriteError(f"could not write cache {path}: {e}") from e

        logger.debug(f"Saved sample to {path}: {record}")

    @staticmethod
    def _parse_record(data) -> Optional[Sample]:
        """Build a Sample from a loaded YAML document."""
        if not isinstance(data, dict):
            return None

        timestamp = data.get("timestamp")
        counter_value = data.get("counter_value")

        # bool is an int subclass
        if not isinstance(counter_value, int) or isinstance(counter_value, bool):
            return None
        if counter_value < 0:
            return None

        try:
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp)
            if not isinstance(timestamp, datetime):
                return None
            return Sample(timestamp=timestamp, counter_value=counter_value)
        except (ValueError, TypeError):
            return None
