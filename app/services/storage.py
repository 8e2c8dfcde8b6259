"""Versioned document store on S3.

Every write produces a new one-row parquet object per document, partitioned
hive-style under the household's namespace::

    households/<household_id>/<collection>/<id_field>=<id>/year=YYYY/month=MM/day=DD/<ts>-<version>.parquet

Writes are grouped into commits. A commit becomes visible only when its marker
``households/<household_id>/_commits/<commit_id>.json`` exists, and the marker
is written after all of the commit's versions, so readers never see half of a
multi-document change. The current version of a document is its committed
version with the highest ``version`` number; deletes are soft and write a
version with ``is_deleted=True``.
"""
import io
import json
import logging
import math
import threading
import time
from contextlib import contextmanager
from datetime import date, datetime, timezone
from enum import Enum
from functools import lru_cache
from uuid import UUID, uuid4
import boto3
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
from app.config import settings
from app.models.schemas.audit import AuditLog
from app.services.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)

ID_FIELDS = {
    "bank_accounts": "bank_account_id",
    "checks": "check_id",
    "loans": "loan_id",
    "debts": "debt_id",
    "payments": "payment_id",
    "entries": "entry_id",
    "payees": "payee_id",
    "categories": "category_id",
    "transfers": "transfer_id",
    "audit_logs": "log_id",
}
META_COLUMNS = ("version", "commit_id")
COMMITS = "_commits"
SENSITIVE_FIELDS = {"access_token", "card_number", "account_number"}

_version_lock = threading.Lock()
_last_version = 0


def _next_version() -> int:
    global _last_version
    with _version_lock:
        _last_version = max(time.time_ns(), _last_version + 1)
        return _last_version


def _jsonable(value):
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def record_data(record) -> dict:
    # Handle both Pydantic models and plain dicts
    if hasattr(record, "model_dump"):
        return record.model_dump(mode="json")
    if isinstance(record, dict):
        return {k: _jsonable(v) for k, v in record.items()}
    raise TypeError(f"Unsupported object type for record_data: {type(record)}")


def _clean(value):
    # parquet round trips turn missing values into NaN and ints into floats
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return int(value)
    return value


def _public(row: dict | None) -> dict | None:
    if row is None:
        return None
    return {k: _clean(v) for k, v in row.items() if k not in META_COLUMNS}


def _matches(row: dict, filters: dict) -> bool:
    for field, expected in filters.items():
        actual = row.get(field)
        if isinstance(expected, (list, tuple, set)):
            if str(actual) not in {str(_jsonable(e)) for e in expected}:
                return False
        elif expected is None:
            if _clean(actual) is not None:
                return False
        elif str(_clean(actual)) != str(_jsonable(expected)):
            return False
    return True


class DocumentStore:
    def __init__(self, bucket: str, client=None, namespace: str = "", household_id: str | None = None):
        self.bucket = bucket
        self.client = client or boto3.client("s3", region_name=settings.aws_region)
        self.namespace = namespace
        self.household_id = household_id

    def for_household(self, household_id) -> "DocumentStore":
        return DocumentStore(
            self.bucket, self.client, namespace=f"households/{household_id}", household_id=str(household_id)
        )

    # --- raw S3 access -------------------------------------------------

    def _key(self, suffix: str) -> str:
        return f"{self.namespace}/{suffix}" if self.namespace else suffix

    def _list_keys(self, prefix: str) -> list[str]:
        keys = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def committed_ids(self) -> set[str]:
        keys = self._list_keys(self._key(f"{COMMITS}/"))
        return {k.rsplit("/", 1)[-1].removesuffix(".json") for k in keys}

    def _write_version(self, record_type: str, data: dict, version: int, commit_id: str) -> str:
        id_field = ID_FIELDS[record_type]
        record_id = data[id_field]
        now = datetime.now(timezone.utc)
        timestamp = now.strftime("%Y%m%dT%H%M%S%fZ")

        # Hybrid partitioning: id → year → month → day
        key = self._key(
            f"{record_type}/{id_field}={record_id}/"
            f"year={now.year}/month={now.month:02}/day={now.day:02}/"
            f"{timestamp}-{version}.parquet"
        )

        df = pd.DataFrame([{**data, "version": version, "commit_id": commit_id}])
        table = pa.Table.from_pandas(df, preserve_index=False)
        out_buffer = pa.BufferOutputStream()
        pq.write_table(table, out_buffer)

        self.client.put_object(Bucket=self.bucket, Key=key, Body=out_buffer.getvalue().to_pybytes())
        return key

    def _write_commit(self, commit_id: str, keys: list[str]) -> None:
        marker = {
            "commit_id": commit_id,
            "committed_at": datetime.now(timezone.utc).isoformat(),
            "keys": keys,
        }
        self.client.put_object(
            Bucket=self.bucket,
            Key=self._key(f"{COMMITS}/{commit_id}.json"),
            Body=json.dumps(marker).encode("utf-8"),
        )

    # --- reads ---------------------------------------------------------

    def load_versions(self, record_type: str, record_id=None) -> pd.DataFrame:
        """All committed versions of a collection (or of one document).

        ``is_current`` marks the latest committed version of each document.
        """
        id_field = ID_FIELDS[record_type]
        if record_id is not None:
            prefix = self._key(f"{record_type}/{id_field}={record_id}/")
        else:
            prefix = self._key(f"{record_type}/")

        keys = self._list_keys(prefix)
        if not keys:
            return pd.DataFrame()

        dfs = []
        for key in keys:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
            dfs.append(pd.read_parquet(io.BytesIO(obj["Body"].read())))
        df = pd.concat(dfs, ignore_index=True)

        df = df[df["commit_id"].isin(list(self.committed_ids()))]
        if df.empty:
            return df

        df = df.sort_values("version").reset_index(drop=True)
        latest = df.groupby(id_field)["version"].transform("max")
        df["is_current"] = df["version"] == latest
        df["is_deleted"] = df["is_deleted"].fillna(False).astype(bool)
        return df

    def _latest_rows(self, record_type: str, record_id=None) -> list[dict]:
        """Latest committed version of each document, deleted ones included."""
        df = self.load_versions(record_type, record_id)
        if df.empty:
            return []
        return df[df["is_current"]].to_dict(orient="records")

    def _latest_row(self, record_type: str, record_id) -> dict | None:
        rows = self._latest_rows(record_type, record_id)
        return rows[0] if rows else None

    def current_frame(self, record_type: str) -> pd.DataFrame:
        df = self.load_versions(record_type)
        if df.empty:
            return df
        df = df[(df["is_current"]) & (~df["is_deleted"])]
        return df.drop(columns=list(META_COLUMNS)).reset_index(drop=True)

    def get(self, record_type: str, record_id) -> dict | None:
        row = self._latest_row(record_type, record_id)
        if row is None or row.get("is_deleted"):
            return None
        return _public(row)

    def query(self, record_type: str, **filters) -> list[dict]:
        return [
            _public(row)
            for row in self._latest_rows(record_type)
            if not row.get("is_deleted") and _matches(row, filters)
        ]

    def history(self, record_type: str, record_id) -> list[dict]:
        df = self.load_versions(record_type, record_id)
        if df.empty:
            return []
        versions = df.sort_values("version", ascending=False)
        return [_public(r) for r in versions.to_dict(orient="records")]

    # --- writes --------------------------------------------------------

    @contextmanager
    def transaction(self):
        """Stage writes and commit them together when the block exits cleanly.

        Nothing reaches S3 when the block raises.
        """
        txn = Transaction(self)
        yield txn
        txn.commit()

    def put(self, record_type: str, record) -> dict:
        with self.transaction() as txn:
            return txn.put(record_type, record)

    def delete(self, record_type: str, record) -> dict:
        with self.transaction() as txn:
            return txn.delete(record_type, record)


class Transaction:
    """A unit of work against one :class:`DocumentStore`.

    Reads see the transaction's own staged writes. On commit, every document
    read through the transaction must still be at the version that was read,
    otherwise :class:`ConcurrentModificationError` is raised and nothing is
    written.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self.commit_id = uuid4().hex
        self._reads: dict[tuple[str, str], int | None] = {}
        self._writes: dict[tuple[str, str], dict] = {}

    def get(self, record_type: str, record_id) -> dict | None:
        key = (record_type, str(record_id))
        if key in self._writes:
            data = self._writes[key]
            return None if data.get("is_deleted") else dict(data)

        row = self.store._latest_row(record_type, record_id)
        self._reads.setdefault(key, row["version"] if row else None)
        if row is None or row.get("is_deleted"):
            return None
        return _public(row)

    def query(self, record_type: str, **filters) -> list[dict]:
        id_field = ID_FIELDS[record_type]
        results, seen = [], set()
        for row in self.store._latest_rows(record_type):
            key = (record_type, str(row[id_field]))
            seen.add(key)
            data = self._writes.get(key, row)
            if data.get("is_deleted") or not _matches(data, filters):
                continue
            self._reads.setdefault(key, row["version"])
            results.append(_public(data))

        for key, data in self._writes.items():
            if key[0] == record_type and key not in seen and not data.get("is_deleted") and _matches(data, filters):
                results.append(dict(data))
        return results

    def put(self, record_type: str, record) -> dict:
        data = record_data(record)
        data["is_current"] = True
        data.setdefault("is_deleted", False)
        self._writes[(record_type, str(data[ID_FIELDS[record_type]]))] = data
        return dict(data)

    def delete(self, record_type: str, record) -> dict:
        data = record_data(record)
        data.update({
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "is_current": True,   # latest version will indicate deleted
            "is_deleted": True,
        })
        self._writes[(record_type, str(data[ID_FIELDS[record_type]]))] = data
        return dict(data)

    def commit(self) -> list[str]:
        if not self._writes:
            return []
        self._check_reads()

        keys = [
            self.store._write_version(record_type, data, _next_version(), self.commit_id)
            for (record_type, _), data in self._writes.items()
        ]
        self.store._write_commit(self.commit_id, keys)
        logger.debug("commit %s wrote %d document(s)", self.commit_id, len(keys))
        return keys

    def _check_reads(self) -> None:
        by_type: dict[str, dict[str, int | None]] = {}
        for (record_type, record_id), version in self._reads.items():
            by_type.setdefault(record_type, {})[record_id] = version

        for record_type, reads in by_type.items():
            id_field = ID_FIELDS[record_type]
            latest = {str(r[id_field]): r["version"] for r in self.store._latest_rows(record_type)}
            for record_id, version in reads.items():
                if latest.get(record_id) != version:
                    logger.warning("commit %s aborted: %s %s changed concurrently",
                                   self.commit_id, record_type, record_id)
                    raise ConcurrentModificationError(
                        f"{record_type} {record_id} was modified by another request; reload and retry"
                    )


@lru_cache
def get_store() -> DocumentStore:
    return DocumentStore(settings.s3_bucket)


def log_action(store: DocumentStore, user_id: str | None, action: str, resource_type: str,
               resource_id: str | None, details: dict | None = None):

    # Normalize details: convert UUIDs and datetimes to strings
    normalized = {}
    for k, v in (details or {}).items():
        if k in SENSITIVE_FIELDS:
            normalized[k] = "***REDACTED***"
        else:
            normalized[k] = _jsonable(v)
    details_json = json.dumps(normalized)

    entry = AuditLog(
        household_id=store.household_id,
        user_id=str(user_id) if user_id is not None else None,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details_json,
    )

    store.put("audit_logs", entry)
