"""
Run upsert engine: reconciles client-reported runs with server state.

Runs are keyed by the client-generated ``client_id`` (unique per user),
so uploads are idempotent under retry and a re-upload with revised
metrics overwrites the stored copy (last write wins, no field merge).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
import pydantic
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import NotFound, ValidationError
from app.models.run import Run
from app.schemas.run import BatchItemResult, RunUpload

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Fields overwritten on every upload of an existing client id
MUTABLE_FIELDS = (
    "run_name", "resort_name", "resort_latitude", "resort_longitude",
    "start_time", "end_time", "distance", "max_speed", "average_speed",
    "elevation_drop", "start_elevation", "end_elevation", "duration",
    "points", "difficulty", "calories", "avg_heart_rate", "max_heart_rate",
    "route_data",
)


@dataclass
class UpsertResult:
    server_id: int
    client_id: str
    created: bool


def _first_error_message(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(part) for part in err.get("loc", ())) or "run"
    return f"{field}: {err.get('msg', 'invalid value')}"


class RunService:
    """Upload, listing and soft deletion of a user's runs."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: int, client_id: str, lock: bool = False) -> Optional[Run]:
        query = self.db.query(Run).filter(Run.user_id == user_id, Run.client_id == client_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def _apply(self, run: Run, payload: RunUpload) -> None:
        values = payload.model_dump(include=set(MUTABLE_FIELDS))
        for field in MUTABLE_FIELDS:
            setattr(run, field, values.get(field))
        # Bump explicitly: an identical re-upload still counts as a sync event
        run.updated_at = datetime.utcnow()

    def _write(self, user_id: int, client_id: str, payload: RunUpload) -> UpsertResult:
        run = self._find(user_id, client_id, lock=True)
        created = run is None
        if created:
            run = Run(user_id=user_id, client_id=client_id)
            self.db.add(run)
        self._apply(run, payload)
        self.db.commit()
        return UpsertResult(server_id=run.id, client_id=client_id, created=created)

    def upsert_run(self, user_id: int, payload: RunUpload) -> UpsertResult:
        """
        Insert or overwrite the run identified by (user_id, client_id).

        The existing row is locked for the update. If a concurrent request
        inserts the same client id first, the unique constraint rejects our
        insert and the write is retried once, which then finds the row and
        updates it.
        """
        client_id = str(payload.client_id)
        try:
            return self._write(user_id, client_id, payload)
        except IntegrityError:
            self.db.rollback()
            logger.info("Concurrent insert of run %s for user %s, retrying as update", client_id, user_id)
        return self._write(user_id, client_id, payload)

    def upsert_batch(self, user_id: int, raw_runs: List[Any]) -> List[BatchItemResult]:
        """
        Upsert up to MAX_BATCH_RUNS runs, one at a time and in input order.

        Each item is validated and committed on its own: a malformed or
        rejected item becomes an ``error`` result and the rest of the batch
        still goes through.
        """
        if not isinstance(raw_runs, list) or not raw_runs:
            raise ValidationError(f"Provide 1-{settings.MAX_BATCH_RUNS} runs")
        if len(raw_runs) > settings.MAX_BATCH_RUNS:
            raise ValidationError(f"Maximum {settings.MAX_BATCH_RUNS} runs per batch")

        results = []
        for raw in raw_runs:
            client_id = raw.get("clientId", raw.get("client_id")) if isinstance(raw, dict) else None
            client_id = str(client_id) if client_id is not None else None
            try:
                payload = RunUpload.model_validate(raw)
            except pydantic.ValidationError as e:
                results.append(BatchItemResult(client_id=client_id, status="error", error=_first_error_message(e)))
                continue

            try:
                outcome = self.upsert_run(user_id, payload)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning("Bulk upload item %s for user %s failed: %s", client_id, user_id, e)
                results.append(BatchItemResult(client_id=client_id, status="error", error="Failed to store run"))
                continue

            results.append(BatchItemResult(
                client_id=outcome.client_id,
                status="created" if outcome.created else "updated",
                server_id=outcome.server_id,
            ))
        return results

    def _visible(self, user_id: int):
        return self.db.query(Run).filter(Run.user_id == user_id, Run.is_deleted.is_(False))

    def list_runs(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        resort: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> Tuple[List[Run], int]:
        """Non-deleted runs, newest first, with the total for the same filter."""
        if page < 1:
            raise ValidationError("page must be at least 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        query = self._visible(user_id)
        if resort:
            query = query.filter(Run.resort_name == resort)
        if since:
            query = query.filter(Run.start_time >= since)

        total = query.count()
        items = (
            query.order_by(Run.start_time.desc(), Run.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def get_run(self, user_id: int, run_id: int) -> Run:
        run = self._visible(user_id).filter(Run.id == run_id).first()
        if not run:
            raise NotFound("Run not found")
        return run

    def get_run_for_audit(self, user_id: int, run_id: int) -> Optional[Run]:
        """Fetch a run by id including soft-deleted rows. Not exposed over HTTP."""
        return self.db.query(Run).filter(Run.user_id == user_id, Run.id == run_id).first()

    def soft_delete_run(self, user_id: int, run_id: int) -> Run:
        """Flag a run as deleted; the row stays for sync and audit."""
        run = self._visible(user_id).filter(Run.id == run_id).first()
        if not run:
            raise NotFound("Run not found")
        now = datetime.utcnow()
        run.is_deleted = True
        run.deleted_at = now
        run.updated_at = now
        self.db.commit()
        return run

    def sync_status(self, user_id: int, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Runs changed after ``since`` (default: all), most recently updated first.

        Soft-deleted runs are included, flagged with ``is_deleted``.
        """
        query = self.db.query(Run).filter(Run.user_id == user_id)
        if since:
            query = query.filter(Run.updated_at > since)
        rows = query.with_entities(
            Run.id, Run.client_id, Run.updated_at, Run.is_deleted, Run.deleted_at
        ).order_by(Run.updated_at.desc(), Run.id.desc()).all()
        return [
            {
                "id": r.id,
                "client_id": r.client_id,
                "updated_at": r.updated_at,
                "is_deleted": r.is_deleted,
                "deleted_at": r.deleted_at,
            }
            for r in rows
        ]
