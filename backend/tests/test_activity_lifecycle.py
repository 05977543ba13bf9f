"""Tests for the activity lifecycle in app.services.activity_service.

Covers:
- Status on create (admin publishes, member goes to review)
- Approve / reject: admin only, and only from a review state
- Rejection deletes the activity and tells the creator once
- Edit rules and the return to review
- Read and listing visibility
- Leader resolution, expiry date, digest and expiry purge
- Notification failures never undo a committed change
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.models.activity import ActivityStatus
from app.services import activity_service
from app.services.activity_repository import ActivityRepository
from app.services.errors import Forbidden, InvalidReference, InvalidTransition, NotFound, ValidationError
from app.services.policy import ActorContext
from tests.conftest import actor_for

NEXT_WEEK = datetime(2030, 5, 4, 18, 30, tzinfo=timezone.utc)


async def _create(db, actor, title="Book Club", notifier=None, **extra):
    fields = {"body": "Monthly meeting", "date": NEXT_WEEK, "leader_name": "Lee", **extra}
    return await activity_service.create_activity(db, actor, title=title, notifier=notifier, **fields)


@pytest.fixture
def people(make_user):
    """An admin, a member who creates activities and an unrelated member."""
    return {
        "admin": make_user("Ada Admin", admin=True, email="admin@example.com"),
        "member": make_user("Mel Member", email="mel@example.com"),
        "other": make_user("Oscar Other", email="oscar@example.com"),
    }


class TestCreate:

    @pytest.mark.asyncio
    async def test_admin_creates_published(self, db, people, notifier):
        activity = await _create(db, actor_for(people["admin"]), notifier=notifier)
        assert activity.status == ActivityStatus.published
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_member_creates_under_review_and_admins_are_told(self, db, people, notifier):
        activity = await _create(db, actor_for(people["member"]), notifier=notifier)
        assert activity.status == ActivityStatus.unpublished_under_review
        assert len(notifier.sent) == 1
        assert notifier.sent[0].recipients == ["admin@example.com"]
        assert "Book Club" in notifier.sent[0].html_body

    @pytest.mark.asyncio
    async def test_anonymous_cannot_create(self, db):
        with pytest.raises(Forbidden):
            await _create(db, ActorContext.anonymous())

    @pytest.mark.asyncio
    async def test_expire_at_is_one_day_after_date(self, db, people):
        activity = await _create(db, actor_for(people["admin"]))
        assert activity.expire_at - activity.date == timedelta(days=1)

    @pytest.mark.asyncio
    async def test_blank_title_is_rejected(self, db, people):
        with pytest.raises(ValidationError):
            await _create(db, actor_for(people["admin"]), title="   ")
        assert await ActivityRepository(db).find() == []

    @pytest.mark.asyncio
    async def test_unknown_leader_username_blocks_create(self, db, people):
        with pytest.raises(InvalidReference):
            await _create(db, actor_for(people["admin"]), leader_username="nobody_here")
        assert await ActivityRepository(db).find() == []

    @pytest.mark.asyncio
    async def test_leader_username_fills_blank_leader_name(self, db, people):
        leader = people["other"]
        activity = await _create(db, actor_for(people["admin"]), leader_name="", leader_username=leader["username"])
        assert activity.leader_user_id == leader["user_id"]
        assert activity.leader_name == "Oscar Other"

    @pytest.mark.asyncio
    async def test_no_leader_at_all_is_rejected(self, db, people):
        with pytest.raises(ValidationError):
            await _create(db, actor_for(people["admin"]), leader_name="")


class TestVisibility:

    @pytest.mark.asyncio
    async def test_listing_excludes_unpublished(self, db, people):
        await _create(db, actor_for(people["member"]), title="Pending Walk")
        published = await _create(db, actor_for(people["admin"]), title="Open Walk")
        listed = await activity_service.list_activities(db)
        assert [a.activity_id for a in listed] == [published.activity_id]

    @pytest.mark.asyncio
    async def test_listing_is_newest_first(self, db, people):
        admin = actor_for(people["admin"])
        first = await _create(db, admin, title="First")
        second = await _create(db, admin, title="Second")
        listed = await activity_service.list_activities(db)
        assert [a.activity_id for a in listed] == [second.activity_id, first.activity_id]

    @pytest.mark.asyncio
    async def test_sign_up_listing_is_by_date(self, db, people):
        admin = actor_for(people["admin"])
        late = await _create(db, admin, title="Late", date=NEXT_WEEK + timedelta(days=3))
        early = await _create(db, admin, title="Early", date=NEXT_WEEK)
        listed = await activity_service.list_activities(db, sort="date")
        assert [a.activity_id for a in listed] == [early.activity_id, late.activity_id]

    @pytest.mark.asyncio
    async def test_unpublished_is_forbidden_to_others(self, db, people):
        activity = await _create(db, actor_for(people["member"]))
        with pytest.raises(Forbidden):
            await activity_service.get_activity(db, actor_for(people["other"]), activity.activity_id)

    @pytest.mark.asyncio
    async def test_unpublished_is_visible_to_creator_and_admin(self, db, people):
        activity = await _create(db, actor_for(people["member"]))
        for who in ("member", "admin"):
            found = await activity_service.get_activity(db, actor_for(people[who]), activity.activity_id)
            assert found.activity_id == activity.activity_id

    @pytest.mark.asyncio
    async def test_missing_activity_is_not_found(self, db, people):
        with pytest.raises(NotFound):
            await activity_service.get_activity(db, actor_for(people["admin"]), "does-not-exist")

    @pytest.mark.asyncio
    async def test_my_activities_include_pending(self, db, people):
        member = actor_for(people["member"])
        await _create(db, member, title="Mine")
        await _create(db, actor_for(people["admin"]), title="Not mine")
        mine = await activity_service.list_my_activities(db, member)
        assert [a.title for a in mine] == ["Mine"]

    @pytest.mark.asyncio
    async def test_pending_queue_is_admin_only(self, db, people):
        activity = await _create(db, actor_for(people["member"]))
        queue = await activity_service.list_pending_activities(db, actor_for(people["admin"]))
        assert [a.activity_id for a in queue] == [activity.activity_id]
        with pytest.raises(Forbidden):
            await activity_service.list_pending_activities(db, actor_for(people["member"]))


class TestApprove:

    @pytest.mark.asyncio
    async def test_admin_approves_and_creator_is_told(self, db, people, notifier):
        activity = await _create(db, actor_for(people["member"]))
        notifier.sent.clear()

        approved = await activity_service.approve_activity(
            db, actor_for(people["admin"]), activity.activity_id, notifier=notifier
        )
        assert approved.status == ActivityStatus.published
        assert len(notifier.sent) == 1
        assert set(notifier.sent[0].recipients) == {"mel@example.com", "admin@example.com"}

    @pytest.mark.asyncio
    async def test_non_admin_cannot_approve_and_nothing_changes(self, db, people):
        activity = await _create(db, actor_for(people["member"]))
        with pytest.raises(Forbidden):
            await activity_service.approve_activity(db, actor_for(people["member"]), activity.activity_id)
        stored = await ActivityRepository(db).find_by_id(activity.activity_id)
        assert stored.status == ActivityStatus.unpublished_under_review

    @pytest.mark.asyncio
    async def test_approving_published_is_invalid_transition(self, db, people):
        activity = await _create(db, actor_for(people["admin"]))
        with pytest.raises(InvalidTransition):
            await activity_service.approve_activity(db, actor_for(people["admin"]), activity.activity_id)

    @pytest.mark.asyncio
    async def test_approving_missing_is_not_found(self, db, people):
        with pytest.raises(NotFound):
            await activity_service.approve_activity(db, actor_for(people["admin"]), "gone")


class TestReject:

    @pytest.mark.asyncio
    async def test_reject_deletes_and_notifies_creator_once(self, db, people, notifier):
        activity = await _create(db, actor_for(people["member"]))
        notifier.sent.clear()

        await activity_service.reject_activity(
            db, actor_for(people["admin"]), activity.activity_id, feedback="Needs a location", notifier=notifier
        )
        assert await ActivityRepository(db).find_by_id(activity.activity_id) is None
        assert len(notifier.sent) == 1
        assert notifier.sent[0].recipients == ["mel@example.com"]
        assert "Needs a location" in notifier.sent[0].html_body

    @pytest.mark.asyncio
    async def test_reject_without_feedback(self, db, people, notifier):
        activity = await _create(db, actor_for(people["member"]))
        notifier.sent.clear()
        await activity_service.reject_activity(db, actor_for(people["admin"]), activity.activity_id, notifier=notifier)
        assert "No feedback was given." in notifier.sent[0].html_body

    @pytest.mark.asyncio
    async def test_rejecting_published_is_invalid_transition(self, db, people):
        activity = await _create(db, actor_for(people["admin"]))
        with pytest.raises(InvalidTransition):
            await activity_service.reject_activity(db, actor_for(people["admin"]), activity.activity_id)
        assert await ActivityRepository(db).find_by_id(activity.activity_id) is not None

    @pytest.mark.asyncio
    async def test_non_admin_cannot_reject(self, db, people):
        activity = await _create(db, actor_for(people["member"]))
        with pytest.raises(Forbidden):
            await activity_service.reject_activity(db, actor_for(people["member"]), activity.activity_id)
        assert await ActivityRepository(db).find_by_id(activity.activity_id) is not None


class TestEdit:

    @pytest.mark.asyncio
    async def test_creator_edit_sends_published_back_to_review(self, db, people, notifier):
        member, admin = actor_for(people["member"]), actor_for(people["admin"])
        activity = await _create(db, member)
        await activity_service.approve_activity(db, admin, activity.activity_id)
        notifier.sent.clear()

        edited = await activity_service.edit_activity(
            db, member, activity.activity_id, {"title": "Book Club (moved)"}, notifier=notifier
        )
        assert edited.status == ActivityStatus.published_under_review
        assert edited.title == "Book Club (moved)"
        assert len(notifier.sent) == 1
        assert notifier.sent[0].recipients == ["admin@example.com"]

    @pytest.mark.asyncio
    async def test_creator_cannot_edit_unpublished(self, db, people):
        activity = await _create(db, actor_for(people["member"]))
        with pytest.raises(Forbidden):
            await activity_service.edit_activity(db, actor_for(people["member"]), activity.activity_id, {"title": "x"})

    @pytest.mark.asyncio
    async def test_admin_edit_publishes_and_admins_are_told(self, db, people, notifier):
        activity = await _create(db, actor_for(people["member"]))
        notifier.sent.clear()
        edited = await activity_service.edit_activity(
            db, actor_for(people["admin"]), activity.activity_id, {"body": "New body"}, notifier=notifier
        )
        assert edited.status == ActivityStatus.published
        assert edited.body == "New body"
        assert len(notifier.sent) == 1
        assert notifier.sent[0].subject == "Published activity edited by an admin"
        assert notifier.sent[0].recipients == ["admin@example.com"]

    @pytest.mark.asyncio
    async def test_stranger_cannot_edit(self, db, people):
        activity = await _create(db, actor_for(people["admin"]))
        with pytest.raises(Forbidden):
            await activity_service.edit_activity(db, actor_for(people["other"]), activity.activity_id, {"title": "x"})

    @pytest.mark.asyncio
    async def test_edit_date_moves_expiry(self, db, people):
        admin = actor_for(people["admin"])
        activity = await _create(db, admin)
        new_date = NEXT_WEEK + timedelta(days=10)
        edited = await activity_service.edit_activity(db, admin, activity.activity_id, {"date": new_date})
        assert edited.expire_at - edited.date == timedelta(days=1)
        assert edited.date.replace(tzinfo=None) == new_date.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_edit_with_unknown_leader_changes_nothing(self, db, people):
        admin = actor_for(people["admin"])
        activity = await _create(db, admin)
        with pytest.raises(InvalidReference):
            await activity_service.edit_activity(
                db, admin, activity.activity_id, {"title": "Renamed", "leader_username": "ghost"}
            )
        stored = await ActivityRepository(db).find_by_id(activity.activity_id)
        assert stored.title == "Book Club"


class TestBookClubScenario:
    """Create by a member, approve, edit, approve again."""

    @pytest.mark.asyncio
    async def test_full_round(self, db, people, notifier):
        member, admin = actor_for(people["member"]), actor_for(people["admin"])

        activity = await _create(db, member, notifier=notifier)
        assert await activity_service.list_activities(db) == []

        await activity_service.approve_activity(db, admin, activity.activity_id, notifier=notifier)
        await activity_service.edit_activity(db, member, activity.activity_id, {"body": "Bring a book"}, notifier=notifier)

        listed = await activity_service.list_activities(db)
        assert [a.status for a in listed] == [ActivityStatus.published_under_review]

        final = await activity_service.approve_activity(db, admin, activity.activity_id, notifier=notifier)
        assert final.status == ActivityStatus.published
        assert final.body == "Bring a book"
        # submitted, approved, edited, approved
        assert len(notifier.sent) == 4


class TestDelete:

    @pytest.mark.asyncio
    async def test_creator_deletes(self, db, people):
        member = actor_for(people["member"])
        activity = await _create(db, member)
        await activity_service.delete_activity(db, member, activity.activity_id)
        assert await ActivityRepository(db).find_by_id(activity.activity_id) is None

    @pytest.mark.asyncio
    async def test_leader_cannot_delete(self, db, people):
        leader = people["other"]
        activity = await _create(db, actor_for(people["admin"]), leader_username=leader["username"])
        with pytest.raises(Forbidden):
            await activity_service.delete_activity(db, actor_for(leader), activity.activity_id)


class TestNotificationFailure:

    @pytest.mark.asyncio
    async def test_failed_email_does_not_undo_create(self, db, people, notifier):
        notifier.fail = True
        activity = await _create(db, actor_for(people["member"]), notifier=notifier)
        assert len(notifier.sent) == 1
        assert await ActivityRepository(db).find_by_id(activity.activity_id) is not None

    @pytest.mark.asyncio
    async def test_failed_email_does_not_undo_approve(self, db, people, notifier):
        activity = await _create(db, actor_for(people["member"]))
        notifier.fail = True
        approved = await activity_service.approve_activity(
            db, actor_for(people["admin"]), activity.activity_id, notifier=notifier
        )
        assert approved.status == ActivityStatus.published


class TestDigestAndExpiry:

    @pytest.mark.asyncio
    async def test_digest_lists_public_activities(self, db, people, notifier):
        await _create(db, actor_for(people["admin"]), title="Open Walk")
        await _create(db, actor_for(people["member"]), title="Hidden Walk")
        count = await activity_service.send_digest(db, "reader@example.com", notifier)
        assert count == 1
        body = notifier.sent[0].html_body
        assert "Open Walk" in body and "Hidden Walk" not in body

    @pytest.mark.asyncio
    async def test_digest_needs_an_address(self, db, notifier):
        with pytest.raises(ValidationError):
            await activity_service.send_digest(db, "  ", notifier)

    @pytest.mark.asyncio
    async def test_purge_removes_only_expired(self, db, people):
        admin = actor_for(people["admin"])
        old = await _create(db, admin, title="Old", date=datetime(2020, 1, 1, tzinfo=timezone.utc))
        upcoming = await _create(db, admin, title="Upcoming")

        removed = await activity_service.purge_expired(db, now=datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert removed == 1
        repo = ActivityRepository(db)
        assert await repo.find_by_id(old.activity_id) is None
        assert await repo.find_by_id(upcoming.activity_id) is not None
