"""Tests for DiscussionAggregator: posting, ordering, and the batch join."""

import pytest
from sqlalchemy import event
from uuid_extensions import uuid7

from src.engagements.discussions import DiscussionAggregator
from src.engagements.errors import NotFound, ValidationFailed
from src.models.common import new_uuid7
from src.repositories.engagements import EngagementRepository


async def _engagement(db_session, project, freelancer_id, status="pending"):
    return await EngagementRepository(db_session).create(
        engagement_id=new_uuid7(), project_id=project.project_id,
        freelancer_id=freelancer_id, status=status,
    )


class TestPost:
    @pytest.mark.anyio
    async def test_freelancer_and_client_can_post(
        self, db_session, project, freelancer_account, client_account,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        agg = DiscussionAggregator(db_session)
        await agg.post(e.engagement_id, freelancer_account.user_id, "Started on the layout")
        await agg.post(e.engagement_id, client_account.user_id, "Looks good",
                       image_refs=["http://cdn/x.png"])
        entries = await agg.list_for_engagement(e.engagement_id)
        assert [x.description for x in entries] == ["Started on the layout", "Looks good"]
        assert entries[1].images == ["http://cdn/x.png"]

    @pytest.mark.anyio
    async def test_stranger_cannot_post(
        self, db_session, project, freelancer_account, second_freelancer,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        with pytest.raises(ValidationFailed):
            await DiscussionAggregator(db_session).post(
                e.engagement_id, second_freelancer.user_id, "hello",
            )

    @pytest.mark.anyio
    async def test_empty_entry_rejected(self, db_session, project, freelancer_account) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        with pytest.raises(ValidationFailed):
            await DiscussionAggregator(db_session).post(
                e.engagement_id, freelancer_account.user_id, "   ",
            )

    @pytest.mark.anyio
    async def test_attachment_only_entry_allowed(
        self, db_session, project, freelancer_account,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        entry = await DiscussionAggregator(db_session).post(
            e.engagement_id, freelancer_account.user_id, "", file_refs=["http://cdn/spec.pdf"],
        )
        assert entry.files == ["http://cdn/spec.pdf"]

    @pytest.mark.anyio
    async def test_rejected_engagement_is_not_found(
        self, db_session, project, freelancer_account,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id, status="rejected")
        agg = DiscussionAggregator(db_session)
        with pytest.raises(NotFound):
            await agg.post(e.engagement_id, freelancer_account.user_id, "hi")
        with pytest.raises(NotFound):
            await agg.list_for_engagement(e.engagement_id)

    @pytest.mark.anyio
    async def test_backfill_attachments(self, db_session, project, freelancer_account) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        agg = DiscussionAggregator(db_session)
        entry = await agg.post(e.engagement_id, freelancer_account.user_id, "uploading...")
        updated = await agg.backfill_attachments(entry.entry_id, images=["http://cdn/a.png"])
        assert updated.images == ["http://cdn/a.png"]
        assert updated.description == "uploading..."
        with pytest.raises(NotFound):
            await agg.backfill_attachments(uuid7(), images=[])


class TestBatchJoin:
    @pytest.mark.anyio
    async def test_entries_attached_to_their_own_engagement(
        self, db_session, project, freelancer_account, second_freelancer, client_account,
    ) -> None:
        e1 = await _engagement(db_session, project, freelancer_account.user_id)
        e2 = await _engagement(db_session, project, second_freelancer.user_id)
        agg = DiscussionAggregator(db_session)
        await agg.post(e1.engagement_id, freelancer_account.user_id, "one")
        await agg.post(e1.engagement_id, client_account.user_id, "two")
        await agg.post(e2.engagement_id, second_freelancer.user_id, "three")

        joined = {j.engagement_id: j for j in await agg.list_engagements(
            project_id=project.project_id,
        )}
        assert [d.description for d in joined[e1.engagement_id].discussions] == ["one", "two"]
        assert [d.description for d in joined[e2.engagement_id].discussions] == ["three"]
        assert joined[e1.engagement_id].project.budget == project.budget
        assert joined[e2.engagement_id].freelancer.full_name == "Lee Park"

    @pytest.mark.anyio
    async def test_engagement_without_entries_gets_empty_list(
        self, db_session, project, freelancer_account,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        joined = await DiscussionAggregator(db_session).get_engagement(e.engagement_id)
        assert joined.discussions == []
        assert joined.project.title == "Landing page redesign"

    @pytest.mark.anyio
    async def test_rejected_engagements_not_listed(
        self, db_session, project, freelancer_account, second_freelancer,
    ) -> None:
        await _engagement(db_session, project, freelancer_account.user_id, status="rejected")
        kept = await _engagement(db_session, project, second_freelancer.user_id)
        joined = await DiscussionAggregator(db_session).list_engagements()
        assert [j.engagement_id for j in joined] == [kept.engagement_id]

    @pytest.mark.anyio
    async def test_query_count_independent_of_engagement_count(
        self, db_engine, db_session, project, client_account,
    ) -> None:
        from src.repositories.accounts import AccountRepository

        accounts = AccountRepository(db_session)
        agg = DiscussionAggregator(db_session)
        for i in range(5):
            f = await accounts.create(user_id=new_uuid7(), email=f"f{i}@example.com",
                                      full_name=f"F{i}", role="freelancer")
            e = await _engagement(db_session, project, f.user_id)
            await agg.post(e.engagement_id, client_account.user_id, f"note {i}")
        rows = await EngagementRepository(db_session).list_active()

        statements: list[str] = []

        def _count(conn, cursor, statement, parameters, context, executemany) -> None:
            statements.append(statement)

        event.listen(db_engine.sync_engine, "before_cursor_execute", _count)
        try:
            joined = await agg.attach_to_all(rows)
        finally:
            event.remove(db_engine.sync_engine, "before_cursor_execute", _count)

        assert len(joined) == 5
        assert all(len(j.discussions) == 1 for j in joined)
        assert len(statements) == 3


class TestCheckPost:
    @pytest.mark.anyio
    async def test_valid_post_writes_nothing(
        self, db_session, project, freelancer_account,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        agg = DiscussionAggregator(db_session)
        row = await agg.check_post(e.engagement_id, freelancer_account.user_id, "",
                                   has_attachments=True)
        assert row.engagement_id == e.engagement_id
        assert await agg.list_for_engagement(e.engagement_id) == []

    @pytest.mark.anyio
    async def test_same_errors_as_post(
        self, db_session, project, freelancer_account, second_freelancer,
    ) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        agg = DiscussionAggregator(db_session)
        with pytest.raises(ValidationFailed):
            await agg.check_post(e.engagement_id, second_freelancer.user_id, "hi",
                                 has_attachments=True)
        with pytest.raises(ValidationFailed):
            await agg.check_post(e.engagement_id, freelancer_account.user_id, " ",
                                 has_attachments=False)
        with pytest.raises(NotFound):
            await agg.check_post(uuid7(), freelancer_account.user_id, "hi",
                                 has_attachments=False)

    @pytest.mark.anyio
    async def test_require_entry(self, db_session, project, freelancer_account) -> None:
        e = await _engagement(db_session, project, freelancer_account.user_id)
        agg = DiscussionAggregator(db_session)
        entry = await agg.post(e.engagement_id, freelancer_account.user_id, "draft")
        assert (await agg.require_entry(entry.entry_id)).entry_id == entry.entry_id
        with pytest.raises(NotFound):
            await agg.require_entry(uuid7())
