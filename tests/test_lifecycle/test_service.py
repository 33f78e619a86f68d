"""Tests for src/lifecycle/service.py — submit, decide, withdraw, pet status."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.errors import (
    AuthorizationError,
    DuplicateApplication,
    InvalidState,
    NotFound,
    UpstreamFailure,
    ValidationError,
)
from src.lifecycle.service import ApplicationLifecycle
from src.models.application import Application
from src.models.enums import ProfileRole
from src.models.pet import Pet
from src.schemas.events import EventType

SHELTER_ID = uuid.uuid4()
ADOPTER_ID = uuid.uuid4()
PET_ID = uuid.uuid4()
APP_ID = uuid.uuid4()


def _pet(status="available"):
    pet = MagicMock(spec=Pet)
    pet.id = PET_ID
    pet.shelter_id = SHELTER_ID
    pet.name = "Biscuit"
    pet.status = status
    return pet


def _application(status="pending", **overrides):
    app = MagicMock(spec=Application)
    app.id = APP_ID
    app.adopter_id = ADOPTER_ID
    app.shelter_id = SHELTER_ID
    app.pet_id = PET_ID
    app.status = status
    app.message = "We have a big garden"
    app.approved_at = None
    app.rejected_at = None
    app.rejection_reason = None
    app.deletion_scheduled_at = None
    app.updated_at = datetime(2026, 3, 1, tzinfo=UTC)
    for key, value in overrides.items():
        setattr(app, key, value)
    return app


def _db(application=None, pet=None):
    """Mock session whose get() resolves Application and Pet lookups."""
    db = AsyncMock()
    db.add = MagicMock()

    async def fake_get(model, key):
        if model is Application:
            return application
        if model is Pet:
            return pet
        return None

    db.get = AsyncMock(side_effect=fake_get)
    return db


@pytest.fixture
def lifecycle():
    return ApplicationLifecycle(retention_days=30)


@pytest.fixture
def mock_emit():
    with patch("src.lifecycle.service.emit", new_callable=AsyncMock) as emit:
        yield emit


@pytest.fixture
def mock_archive():
    with patch("src.lifecycle.service.history_archive") as archive:
        archive.record_outcome = AsyncMock()
        yield archive


def _emitted_types(mock_emit):
    return [call.args[0].event_type for call in mock_emit.await_args_list]


class TestSubmit:
    """Tests for ApplicationLifecycle.submit."""

    @pytest.mark.asyncio
    async def test_creates_pending(self, lifecycle, mock_emit):
        db = _db(pet=_pet())
        no_existing = MagicMock()
        no_existing.scalar_one_or_none.return_value = None
        db.execute.return_value = no_existing

        application = await lifecycle.submit(
            db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="  Loves dogs  "
        )

        assert application.status == "pending"
        assert application.message == "Loves dogs"
        assert application.shelter_id == SHELTER_ID
        db.add.assert_called_once_with(application)
        db.commit.assert_awaited_once()
        assert _emitted_types(mock_emit) == [EventType.APPLICATION_SUBMITTED]

    @pytest.mark.asyncio
    async def test_blank_message(self, lifecycle, mock_emit):
        db = _db(pet=_pet())
        with pytest.raises(ValidationError, match="message"):
            await lifecycle.submit(db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="   ")
        db.get.assert_not_awaited()
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_pet(self, lifecycle, mock_emit):
        db = _db(pet=None)
        with pytest.raises(NotFound):
            await lifecycle.submit(db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="hi")

    @pytest.mark.asyncio
    async def test_adopted_pet(self, lifecycle, mock_emit):
        db = _db(pet=_pet(status="adopted"))
        with pytest.raises(InvalidState, match="no longer available"):
            await lifecycle.submit(db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="hi")
        db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_detected_by_lookup(self, lifecycle, mock_emit):
        db = _db(pet=_pet())
        existing = MagicMock()
        existing.scalar_one_or_none.return_value = uuid.uuid4()
        db.execute.return_value = existing

        with pytest.raises(DuplicateApplication):
            await lifecycle.submit(db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="hi")
        db.add.assert_not_called()
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_detected_by_unique_index(self, lifecycle, mock_emit):
        """A concurrent submit that wins the race surfaces as DuplicateApplication."""
        db = _db(pet=_pet())
        no_existing = MagicMock()
        no_existing.scalar_one_or_none.return_value = None
        db.execute.return_value = no_existing
        db.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(DuplicateApplication):
            await lifecycle.submit(db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="hi")
        db.rollback.assert_awaited()
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_down(self, lifecycle, mock_emit):
        db = _db()
        db.get.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        with pytest.raises(UpstreamFailure):
            await lifecycle.submit(db, adopter_id=ADOPTER_ID, pet_id=PET_ID, message="hi")


class TestApprove:
    """Tests for ApplicationLifecycle.approve."""

    @pytest.mark.asyncio
    async def test_pending_to_approved(self, lifecycle, mock_emit, mock_archive):
        application = _application()
        pet = _pet()
        db = _db(application=application, pet=pet)

        before = datetime.now(UTC)
        result = await lifecycle.approve(db, APP_ID, actor_id=SHELTER_ID)

        assert result.status == "approved"
        assert result.approved_at >= before
        assert result.deletion_scheduled_at == result.approved_at + timedelta(days=30)
        assert pet.status == "adopted"
        mock_archive.record_outcome.assert_awaited_once_with(db, application, pet)
        db.commit.assert_awaited_once()
        assert _emitted_types(mock_emit) == [EventType.APPLICATION_APPROVED]

    @pytest.mark.asyncio
    async def test_rejected_to_approved_clears_reason(self, lifecycle, mock_emit, mock_archive):
        earlier = datetime.now(UTC) - timedelta(days=2)
        application = _application(
            status="rejected",
            rejected_at=earlier,
            rejection_reason="No yard",
            deletion_scheduled_at=earlier + timedelta(days=30),
        )
        db = _db(application=application, pet=_pet())

        await lifecycle.approve(db, APP_ID, actor_id=SHELTER_ID)

        assert application.rejected_at is None
        assert application.rejection_reason is None
        assert application.deletion_scheduled_at > earlier + timedelta(days=30)
        event = mock_emit.await_args.args[0]
        assert event.data["from_status"] == "rejected"
        assert event.data["to_status"] == "approved"

    @pytest.mark.asyncio
    async def test_wrong_shelter(self, lifecycle, mock_emit, mock_archive):
        db = _db(application=_application(), pet=_pet())
        with pytest.raises(AuthorizationError):
            await lifecycle.approve(db, APP_ID, actor_id=uuid.uuid4())
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignored_cannot_be_approved(self, lifecycle, mock_emit, mock_archive):
        db = _db(application=_application(status="ignored"), pet=_pet())
        with pytest.raises(InvalidState):
            await lifecycle.approve(db, APP_ID, actor_id=SHELTER_ID)
        mock_archive.record_outcome.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_application(self, lifecycle, mock_emit, mock_archive):
        db = _db(application=None)
        with pytest.raises(NotFound):
            await lifecycle.approve(db, APP_ID, actor_id=SHELTER_ID)

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(self, lifecycle, mock_emit, mock_archive):
        db = _db(application=_application(), pet=_pet())
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("gone"))

        with pytest.raises(UpstreamFailure):
            await lifecycle.approve(db, APP_ID, actor_id=SHELTER_ID)
        db.rollback.assert_awaited_once()
        mock_emit.assert_not_awaited()


class TestReject:
    """Tests for ApplicationLifecycle.reject, including step-up on revocation."""

    @pytest.mark.asyncio
    async def test_pending_to_rejected(self, lifecycle, mock_emit, mock_archive):
        application = _application()
        pet = _pet()
        db = _db(application=application, pet=pet)

        with patch("src.lifecycle.service.reauthenticate", new_callable=AsyncMock) as reauth:
            await lifecycle.reject(db, APP_ID, actor_id=SHELTER_ID, reason="Small flat")

        reauth.assert_not_awaited()
        assert application.status == "rejected"
        assert application.rejection_reason == "Small flat"
        assert application.deletion_scheduled_at == application.rejected_at + timedelta(days=30)
        assert pet.status == "available"
        mock_archive.record_outcome.assert_awaited_once()
        assert _emitted_types(mock_emit) == [EventType.APPLICATION_REJECTED]

    @pytest.mark.asyncio
    async def test_empty_reason(self, lifecycle, mock_emit, mock_archive):
        db = _db(application=_application(), pet=_pet())
        with pytest.raises(ValidationError):
            await lifecycle.reject(db, APP_ID, actor_id=SHELTER_ID, reason="  ")
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revoke_approval_with_password(self, lifecycle, mock_emit, mock_archive):
        approved_at = datetime.now(UTC) - timedelta(days=1)
        application = _application(
            status="approved",
            approved_at=approved_at,
            deletion_scheduled_at=approved_at + timedelta(days=30),
        )
        pet = _pet(status="adopted")
        db = _db(application=application, pet=pet)

        with patch("src.lifecycle.service.reauthenticate", new_callable=AsyncMock) as reauth:
            await lifecycle.reject(
                db, APP_ID, actor_id=SHELTER_ID, reason="Adopter moved", password="secret"
            )

        reauth.assert_awaited_once_with(db, SHELTER_ID, "secret")
        assert application.status == "rejected"
        assert application.approved_at is None
        # Pet stays adopted until the shelter relists it
        assert pet.status == "adopted"

    @pytest.mark.asyncio
    async def test_revoke_approval_wrong_password(self, lifecycle, mock_emit, mock_archive):
        application = _application(status="approved", approved_at=datetime.now(UTC))
        db = _db(application=application, pet=_pet(status="adopted"))

        with patch(
            "src.lifecycle.service.reauthenticate",
            new_callable=AsyncMock,
            side_effect=AuthorizationError("Incorrect password"),
        ):
            with pytest.raises(AuthorizationError, match="Incorrect password"):
                await lifecycle.reject(
                    db, APP_ID, actor_id=SHELTER_ID, reason="r", password="nope"
                )

        assert application.status == "approved"
        db.commit.assert_not_awaited()
        assert _emitted_types(mock_emit) == [EventType.STEP_UP_FAILED]


class TestIgnore:
    @pytest.mark.asyncio
    async def test_pending_to_ignored(self, lifecycle, mock_emit, mock_archive):
        application = _application()
        db = _db(application=application)

        await lifecycle.ignore(db, APP_ID, actor_id=SHELTER_ID)

        assert application.status == "ignored"
        assert application.deletion_scheduled_at is None
        mock_archive.record_outcome.assert_not_awaited()
        assert _emitted_types(mock_emit) == [EventType.APPLICATION_IGNORED]

    @pytest.mark.asyncio
    async def test_approved_cannot_be_ignored(self, lifecycle, mock_emit, mock_archive):
        db = _db(application=_application(status="approved", approved_at=datetime.now(UTC)))
        with pytest.raises(InvalidState):
            await lifecycle.ignore(db, APP_ID, actor_id=SHELTER_ID)


class TestWithdraw:
    @pytest.mark.asyncio
    async def test_pending_deleted(self, lifecycle, mock_emit):
        application = _application()
        db = _db(application=application)

        await lifecycle.withdraw(db, APP_ID, actor_id=ADOPTER_ID)

        db.delete.assert_awaited_once_with(application)
        db.commit.assert_awaited_once()
        assert _emitted_types(mock_emit) == [EventType.APPLICATION_WITHDRAWN]

    @pytest.mark.asyncio
    async def test_approved_cannot_be_deleted(self, lifecycle, mock_emit):
        db = _db(application=_application(status="approved", approved_at=datetime.now(UTC)))
        with pytest.raises(InvalidState, match="Approved applications cannot be deleted"):
            await lifecycle.withdraw(db, APP_ID, actor_id=ADOPTER_ID)
        db.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_own_application(self, lifecycle, mock_emit):
        db = _db(application=_application())
        with pytest.raises(AuthorizationError):
            await lifecycle.withdraw(db, APP_ID, actor_id=uuid.uuid4())


class TestMarkPetAvailable:
    @pytest.mark.asyncio
    async def test_adopted_to_available(self, lifecycle, mock_emit):
        pet = _pet(status="adopted")
        db = _db(pet=pet)

        result = await lifecycle.mark_pet_available(db, PET_ID, actor_id=SHELTER_ID)

        assert result.status == "available"
        db.commit.assert_awaited_once()
        event = mock_emit.await_args.args[0]
        assert event.event_type == EventType.PET_STATUS_CHANGED
        assert event.data["from_status"] == "adopted"

    @pytest.mark.asyncio
    async def test_already_available(self, lifecycle, mock_emit):
        db = _db(pet=_pet())
        with pytest.raises(InvalidState):
            await lifecycle.mark_pet_available(db, PET_ID, actor_id=SHELTER_ID)

    @pytest.mark.asyncio
    async def test_other_shelter(self, lifecycle, mock_emit):
        db = _db(pet=_pet(status="adopted"))
        with pytest.raises(AuthorizationError):
            await lifecycle.mark_pet_available(db, PET_ID, actor_id=uuid.uuid4())


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_application_third_party(self, lifecycle):
        db = _db(application=_application())
        with pytest.raises(AuthorizationError):
            await lifecycle.get_application(db, APP_ID, viewer_id=uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_application_adopter(self, lifecycle):
        application = _application()
        db = _db(application=application)
        assert await lifecycle.get_application(db, APP_ID, viewer_id=ADOPTER_ID) is application

    @pytest.mark.asyncio
    async def test_list_for_shelter(self, lifecycle):
        db = _db()
        rows = [_application(), _application()]
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        db.execute.return_value = result

        listed = await lifecycle.list_applications(
            db, viewer_id=SHELTER_ID, viewer_role=ProfileRole.SHELTER
        )
        assert listed == rows

    @pytest.mark.asyncio
    async def test_list_for_admin_rejected(self, lifecycle):
        with pytest.raises(ValidationError):
            await lifecycle.list_applications(
                _db(), viewer_id=uuid.uuid4(), viewer_role=ProfileRole.ADMIN
            )
