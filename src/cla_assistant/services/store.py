"""JSON-file backed stores for linked repositories and CLA signatures.

Both stores persist a JSON list under the configured state directory and guard
read-modify-write cycles with a lock, so concurrent requests and fan-out workers
in one process see consistent files.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel

from cla_assistant.models import RepoRecord, SignatureRecord

logger = logging.getLogger(__name__)


def _load_json_list(path: Path) -> list[dict[str, object]]:
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning(
            "State file is not valid JSON; treating as empty", extra={"path": str(path)}
        )
        return []
    if not isinstance(raw, list):
        logger.warning(
            "State file has unexpected shape; treating as empty", extra={"path": str(path)}
        )
        return []
    return [item for item in raw if isinstance(item, dict)]


def _save_json_list(path: Path, items: Sequence[BaseModel]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [m.model_dump(mode="json") for m in items]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


@dataclass
class RepoStore:
    """Repository directory: (owner, repo) -> linked gist and stored token."""

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[RepoRecord]:
        return [RepoRecord.model_validate(item) for item in _load_json_list(self.path)]

    def list(self) -> list[RepoRecord]:
        with self._lock:
            return self._load_unlocked()

    def get(self, *, owner: str, repo: str) -> RepoRecord | None:
        with self._lock:
            for record in self._load_unlocked():
                if record.owner == owner and record.repo == repo:
                    return record
            return None

    def upsert(self, record: RepoRecord) -> RepoRecord:
        """Link a repository, or replace its gist/token when already linked."""

        with self._lock:
            repos = self._load_unlocked()
            for idx, existing in enumerate(repos):
                if existing.owner == record.owner and existing.repo == record.repo:
                    repos[idx] = record
                    break
            else:
                repos.append(record)
            _save_json_list(self.path, repos)
        logger.info("Repository linked", extra={"repository": record.full_name})
        return record

    def remove(self, *, owner: str, repo: str) -> bool:
        with self._lock:
            repos = self._load_unlocked()
            kept = [r for r in repos if not (r.owner == owner and r.repo == repo)]
            if len(kept) == len(repos):
                return False
            _save_json_list(self.path, kept)
        logger.info("Repository unlinked", extra={"repository": f"{owner}/{repo}"})
        return True


@dataclass
class SignatureStore:
    """Append-only store of signature records."""

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[SignatureRecord]:
        return [SignatureRecord.model_validate(item) for item in _load_json_list(self.path)]

    def load(self) -> list[SignatureRecord]:
        with self._lock:
            return self._load_unlocked()

    def find(
        self,
        *,
        owner: str | None = None,
        repo: str | None = None,
        user: str | None = None,
        gist_url: str | None = None,
        gist_version: str | None = None,
    ) -> list[SignatureRecord]:
        """Return records matching every given (non-None) field, oldest first."""

        criteria = {
            "owner": owner,
            "repo": repo,
            "user": user,
            "gist_url": gist_url,
            "gist_version": gist_version,
        }
        active = {k: v for k, v in criteria.items() if v is not None}
        with self._lock:
            return [
                record
                for record in self._load_unlocked()
                if all(getattr(record, k) == v for k, v in active.items())
            ]

    def add(self, record: SignatureRecord) -> SignatureRecord:
        """Persist ``record`` unless the same signature already exists.

        Returns:
            The stored record: either ``record`` or the pre-existing one.
        """

        with self._lock:
            records = self._load_unlocked()
            for existing in records:
                if (
                    existing.owner == record.owner
                    and existing.repo == record.repo
                    and existing.gist_url == record.gist_url
                    and existing.gist_version == record.gist_version
                    and existing.user == record.user
                ):
                    return existing
            records.append(record)
            _save_json_list(self.path, records)
            return record
