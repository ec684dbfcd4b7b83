"""
Tests for the submission ledger: submit, review, listing and the counter.
"""
import asyncio
import csv
import io
import pytest
from datetime import datetime, timedelta
from sqlalchemy import select, func

from digital_forms.core.exceptions import (
    ForbiddenException,
    InvalidArgumentException,
    LinkExpiredException,
    NotFoundException,
)
from digital_forms.models.activity_log import ActivityLog, ActivityAction
from digital_forms.models.form_link import FormLink
from digital_forms.models.submission import FormSubmission, SubmissionStatus
from digital_forms.services.link_service import LinkService
from digital_forms.services.submission_service import SubmissionService, CSV_HEADERS
from tests.conftest import TestSessionLocal, principal_for


async def _submit(db, link, name="Bob", data=None, email=None):
    return await SubmissionService.submit(
        db=db,
        link_code=link.link_code,
        customer_name=name,
        form_data=data if data is not None else {"phone": "555-0100"},
        customer_email=email
    )


class TestSubmit:
    """Tests for the public submission path."""

    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, db_session, agent_a, agent_b, admin_user):
        """Agent creates a link, customer submits, owner and admin see it, other agent cannot review."""
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        assert link.expires_at == link.created_at + timedelta(days=14)

        submission = await _submit(db_session, link, name="Bob", data={"budget": 1000})

        assert submission.status == SubmissionStatus.PENDING
        assert submission.owner_user_id == agent_a.id
        assert submission.link_id == link.id
        await db_session.refresh(link)
        assert link.submissions_count == 1

        mine = await SubmissionService.list_for_owner(db_session, agent_a.id)
        assert [s.customer_name for s in mine] == ["Bob"]

        everything = await SubmissionService.list_all(db_session)
        assert submission.id in {s.id for s in everything}

        with pytest.raises(ForbiddenException):
            await SubmissionService.review(db_session, principal_for(agent_b), submission.id, "approved")

    @pytest.mark.asyncio
    async def test_unknown_code_not_found(self, db_session):
        with pytest.raises(NotFoundException):
            await SubmissionService.submit(db_session, "no-such-code", "Bob", {"a": 1})

    @pytest.mark.asyncio
    async def test_zero_day_link_rejects_with_expired(self, db_session, agent_a):
        """An expired link fails with Expired, not NotFound."""
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A", expiry_days=0)

        with pytest.raises(LinkExpiredException):
            await _submit(db_session, link)

    @pytest.mark.asyncio
    async def test_deleted_link_rejects_with_expired(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        await LinkService.soft_delete(db_session, principal_for(agent_a), link.id)

        with pytest.raises(LinkExpiredException):
            await _submit(db_session, link)

    @pytest.mark.asyncio
    async def test_expired_is_checked_before_input(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A", expiry_days=0)

        with pytest.raises(LinkExpiredException):
            await SubmissionService.submit(db_session, link.link_code, "", None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,data", [("", {"a": 1}), ("  ", {"a": 1}), (None, {"a": 1}), ("Bob", None)])
    async def test_missing_name_or_data(self, db_session, agent_a, name, data):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")

        with pytest.raises(InvalidArgumentException):
            await SubmissionService.submit(db_session, link.link_code, name, data)

        await db_session.refresh(link)
        assert link.submissions_count == 0

    @pytest.mark.asyncio
    async def test_counter_increments_by_one_per_submission(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")

        for i in range(3):
            await _submit(db_session, link, name=f"Customer {i}")

        await db_session.refresh(link)
        assert link.submissions_count == 3

    @pytest.mark.asyncio
    async def test_activity_attributed_to_link_owner(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        await _submit(db_session, link)

        result = await db_session.execute(
            select(ActivityLog).where(ActivityLog.action == ActivityAction.FORM_SUBMISSION)
        )
        entries = result.scalars().all()

        assert len(entries) == 1
        assert entries[0].user_id == agent_a.id

    @pytest.mark.asyncio
    async def test_concurrent_submissions_are_all_counted(self, db_session, agent_a):
        """N concurrent submits on separate sessions: final count == successes."""
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        await db_session.commit()

        async def submit_one(i: int) -> bool:
            async with TestSessionLocal() as session:
                await SubmissionService.submit(session, link.link_code, f"Customer {i}", {"n": i})
                return True

        results = await asyncio.gather(*(submit_one(i) for i in range(10)), return_exceptions=True)
        successes = sum(1 for r in results if r is True)

        async with TestSessionLocal() as session:
            count = (await session.execute(
                select(FormLink.submissions_count).where(FormLink.id == link.id)
            )).scalar_one()
            rows = (await session.execute(
                select(func.count(FormSubmission.id)).where(FormSubmission.link_id == link.id)
            )).scalar_one()

        assert successes == 10
        assert count == successes
        assert rows == successes


class TestReview:
    """Tests for reviewing submissions."""

    @pytest.mark.asyncio
    async def test_review_round_trip(self, db_session, agent_a, admin_user):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)
        before = datetime.utcnow()

        await SubmissionService.review(
            db_session, principal_for(admin_user), submission.id, "approved", "looks good"
        )
        fetched = await SubmissionService.get_submission(db_session, principal_for(admin_user), submission.id)

        assert fetched.status == SubmissionStatus.APPROVED
        assert fetched.review_notes == "looks good"
        assert fetched.reviewed_by == admin_user.id
        assert fetched.reviewed_at is not None
        assert fetched.reviewed_at >= before

    @pytest.mark.asyncio
    async def test_owner_can_review(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)

        reviewed = await SubmissionService.review(db_session, principal_for(agent_a), submission.id, "rejected")

        assert reviewed.status == SubmissionStatus.REJECTED
        assert reviewed.reviewed_by == agent_a.id

    @pytest.mark.asyncio
    async def test_review_back_to_pending(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)
        await SubmissionService.review(db_session, principal_for(agent_a), submission.id, "approved")

        reviewed = await SubmissionService.review(db_session, principal_for(agent_a), submission.id, "pending")

        assert reviewed.status == SubmissionStatus.PENDING

    @pytest.mark.asyncio
    async def test_review_invalid_status(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)

        with pytest.raises(InvalidArgumentException):
            await SubmissionService.review(db_session, principal_for(agent_a), submission.id, "archived")

    @pytest.mark.asyncio
    async def test_review_missing_submission(self, db_session, agent_a):
        with pytest.raises(NotFoundException):
            await SubmissionService.review(db_session, principal_for(agent_a), "missing", "approved")

    @pytest.mark.asyncio
    async def test_forbidden_checked_before_status(self, db_session, agent_a, agent_b):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)

        with pytest.raises(ForbiddenException):
            await SubmissionService.review(db_session, principal_for(agent_b), submission.id, "archived")

    @pytest.mark.asyncio
    async def test_other_agent_cannot_read(self, db_session, agent_a, agent_b):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)

        with pytest.raises(ForbiddenException):
            await SubmissionService.get_submission(db_session, principal_for(agent_b), submission.id)


class TestListingAndExport:
    """Tests for listing and CSV export."""

    @pytest.mark.asyncio
    async def test_list_for_owner_scoped(self, db_session, agent_a, agent_b):
        link_a = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        link_b = await LinkService.create_link(db_session, principal_for(agent_b), "201", "B")
        await _submit(db_session, link_a, name="Alice")
        await _submit(db_session, link_b, name="Carol")

        mine = await SubmissionService.list_for_owner(db_session, agent_a.id)
        views = [SubmissionService.to_response(s) for s in mine]

        assert [v.customer_name for v in views] == ["Alice"]
        assert views[0].unit_number == "101"

    @pytest.mark.asyncio
    async def test_response_without_loaded_link(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)

        view = SubmissionService.to_response(submission)

        assert view.link_id == link.id
        assert view.unit_number is None
        assert view.sales_agent is None

    @pytest.mark.asyncio
    async def test_submission_survives_link_deletion(self, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        submission = await _submit(db_session, link)
        await LinkService.soft_delete(db_session, principal_for(agent_a), link.id)

        fetched = await SubmissionService.get_submission(db_session, principal_for(agent_a), submission.id)

        assert fetched.link_id == link.id

    @pytest.mark.asyncio
    async def test_export_csv(self, db_session, agent_a, admin_user):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "Sales, Inc")
        await _submit(db_session, link, name='Bob "The Buyer"', email="bob@example.com")

        content = await SubmissionService.export_csv(db_session, principal_for(admin_user))
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == CSV_HEADERS
        assert len(rows) == 2
        assert rows[1][1] == 'Bob "The Buyer"'
        assert rows[1][2] == "bob@example.com"
        assert rows[1][3] == "101"
        assert rows[1][4] == "Sales, Inc"
        assert rows[1][6] == "pending"
        assert rows[1][7] == "agenta"

    @pytest.mark.asyncio
    async def test_export_csv_neutralizes_formulas(self, db_session, agent_a, admin_user):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        await _submit(db_session, link, name="=HYPERLINK(\"http://x\")")

        content = await SubmissionService.export_csv(db_session, principal_for(admin_user))
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[1][1] == "'=HYPERLINK(\"http://x\")"
        assert rows[1][2] == ""
