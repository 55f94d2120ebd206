"""Tests for DiscussionRepository ordering and attachment backfill."""

import pytest
from uuid_extensions import uuid7

from src.models.common import new_uuid7
from src.repositories.discussions import DiscussionRepository
from src.repositories.engagements import EngagementRepository


@pytest.fixture
async def engagement(db_session, project, freelancer_account):
    return await EngagementRepository(db_session).create(
        engagement_id=new_uuid7(), project_id=project.project_id,
        freelancer_id=freelancer_account.user_id,
    )


class TestDiscussionRepository:
    @pytest.mark.anyio
    async def test_list_in_insertion_order(self, db_session, engagement, freelancer_account) -> None:
        repo = DiscussionRepository(db_session)
        for text in ("first", "second", "third"):
            await repo.create(entry_id=new_uuid7(), engagement_id=engagement.engagement_id,
                              sender_id=freelancer_account.user_id, description=text)
        rows = await repo.list_for_engagement(engagement.engagement_id)
        assert [r.description for r in rows] == ["first", "second", "third"]

    @pytest.mark.anyio
    async def test_list_for_engagements_groups(
        self, db_session, engagement, project, second_freelancer, freelancer_account,
    ) -> None:
        other = await EngagementRepository(db_session).create(
            engagement_id=new_uuid7(), project_id=project.project_id,
            freelancer_id=second_freelancer.user_id,
        )
        repo = DiscussionRepository(db_session)
        await repo.create(entry_id=new_uuid7(), engagement_id=engagement.engagement_id,
                          sender_id=freelancer_account.user_id, description="a")
        await repo.create(entry_id=new_uuid7(), engagement_id=other.engagement_id,
                          sender_id=second_freelancer.user_id, description="b")
        rows = await repo.list_for_engagements([engagement.engagement_id])
        assert [r.description for r in rows] == ["a"]
        assert await repo.list_for_engagements([]) == []

    @pytest.mark.anyio
    async def test_update_attachments(self, db_session, engagement, freelancer_account) -> None:
        repo = DiscussionRepository(db_session)
        row = await repo.create(entry_id=new_uuid7(), engagement_id=engagement.engagement_id,
                                sender_id=freelancer_account.user_id, description="pics",
                                images=["http://x/1.png"])
        row = await repo.update_attachments(row.entry_id, files=["http://x/spec.pdf"])
        assert row.images == ["http://x/1.png"]
        assert row.files == ["http://x/spec.pdf"]
        assert await repo.update_attachments(uuid7(), images=[]) is None
