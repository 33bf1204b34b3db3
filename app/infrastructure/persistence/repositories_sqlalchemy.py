from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from app.application.interfaces import PhraseRepositoryInterface
from app.database import Database
from app.domain.errors import PhraseNotFoundError, RepositoryUnavailableError
from app.domain.models import ExportRow, Phrase, Submission
from app.models import PhraseRecord, SubmissionRecord


@asynccontextmanager
async def _unavailable_on_disconnect() -> AsyncIterator[None]:
    """Translate connectivity failures into RepositoryUnavailableError"""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise RepositoryUnavailableError(f"Database unreachable: {exc}") from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            raise RepositoryUnavailableError(f"Database connection lost: {exc}") from exc
        raise
    except (ConnectionError, OSError) as exc:
        raise RepositoryUnavailableError(f"Database unreachable: {exc}") from exc


class SQLAlchemyPhraseRepository(PhraseRepositoryInterface):
    """SQLAlchemy implementation of the phrase repository"""

    def __init__(self, database: Database, *, quota: int):
        self.database = database
        self.quota = quota

    def _random_order(self):
        # MySQL spells it RAND(); PostgreSQL and SQLite use RANDOM().
        if self.database.engine.dialect.name in ("mysql", "mariadb"):
            return func.rand()
        return func.random()

    async def next_available_phrase(self) -> Optional[Phrase]:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                result = await session.execute(
                    select(PhraseRecord)
                    .where(PhraseRecord.sample_count < self.quota)
                    .order_by(self._random_order())
                    .limit(1)
                )
                record = result.scalar_one_or_none()
        return Phrase.model_validate(record) if record else None

    async def increment_sample_count(self, phrase_id: int) -> None:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                async with session.begin():
                    result = await session.execute(
                        update(PhraseRecord)
                        .where(PhraseRecord.id == phrase_id)
                        .values(sample_count=PhraseRecord.sample_count + 1)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        raise PhraseNotFoundError(phrase_id)

    async def commit_submission(
        self,
        phrase_id: int,
        contributor_id: str,
        audio_ref: str,
        storage_id: Optional[str] = None,
    ) -> Submission:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                try:
                    async with session.begin():
                        # Single-statement increment; the row lock it takes
                        # serialises concurrent submissions for the same phrase.
                        result = await session.execute(
                            update(PhraseRecord)
                            .where(PhraseRecord.id == phrase_id)
                            .values(sample_count=PhraseRecord.sample_count + 1)
                            .execution_options(synchronize_session=False)
                        )
                        if result.rowcount == 0:
                            raise PhraseNotFoundError(phrase_id)

                        db_submission = SubmissionRecord(
                            phrase_id=phrase_id,
                            contributor_id=contributor_id,
                            audio_ref=audio_ref,
                            storage_id=storage_id,
                        )
                        session.add(db_submission)
                        await session.flush()
                        await session.refresh(db_submission)
                except IntegrityError as exc:
                    # Phrase removed between the update and the insert.
                    raise PhraseNotFoundError(phrase_id) from exc
        return Submission.model_validate(db_submission)

    async def get_phrase(self, phrase_id: int) -> Optional[Phrase]:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                record = await session.get(PhraseRecord, phrase_id)
        return Phrase.model_validate(record) if record else None

    async def count_submissions_by_contributor(self, contributor_id: str) -> int:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                result = await session.execute(
                    select(func.count(SubmissionRecord.id)).where(
                        SubmissionRecord.contributor_id == contributor_id
                    )
                )
                return int(result.scalar_one())

    async def list_submissions(self, phrase_id: Optional[int] = None) -> List[Submission]:
        query = select(SubmissionRecord).order_by(SubmissionRecord.id)
        if phrase_id is not None:
            query = query.where(SubmissionRecord.phrase_id == phrase_id)
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        return [Submission.model_validate(row) for row in rows]

    async def export_rows(self) -> List[ExportRow]:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                result = await session.execute(
                    select(
                        SubmissionRecord.id,
                        PhraseRecord.text.label("phrase"),
                        SubmissionRecord.contributor_id.label("user_id"),
                        SubmissionRecord.audio_ref.label("audio_url"),
                        SubmissionRecord.created_at,
                    )
                    .join(PhraseRecord, SubmissionRecord.phrase_id == PhraseRecord.id)
                    .order_by(SubmissionRecord.id)
                )
                rows = result.all()
        return [ExportRow.model_validate(dict(row._mapping)) for row in rows]

    async def add_phrases(self, texts: Iterable[str]) -> List[Phrase]:
        records = [PhraseRecord(text=value, sample_count=0) for value in texts]
        if not records:
            return []
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                async with session.begin():
                    session.add_all(records)
                    await session.flush()
        return [Phrase.model_validate(record) for record in records]

    async def count_phrases(self) -> int:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                result = await session.execute(select(func.count(PhraseRecord.id)))
                return int(result.scalar_one())

    async def phrase_texts(self) -> set[str]:
        async with _unavailable_on_disconnect():
            async with self.database.session_scope() as session:
                result = await session.execute(select(PhraseRecord.text))
                return set(result.scalars().all())
