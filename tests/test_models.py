from datetime import datetime, timedelta, timezone
from itertools import chain, combinations

import pytest
from pydantic import ValidationError

from models.activity import ActivityModel
from models.message import (
    MessageModel,
    QuotedMessage,
    RegularKind,
    SubtaskCompletedKind,
    SubtaskReference,
)
from models.project import ProjectModel, ProjectAttachmentModel
from models.task import AttachmentModel, SubtaskModel, TaskModel
from models.user import UserModel
from utils.dates import format_file_size, is_before_today, is_today, is_tomorrow

ALICE = UserModel(id="a", name="Alice Johnson")
BOB = UserModel(id="b", name="Bob")
CAROL = UserModel(id="c", name="Carol Chen")
USERS = [ALICE, BOB, CAROL]


def _subsets(items):
    return chain.from_iterable(combinations(items, n) for n in range(len(items) + 1))


# --- Users ---

def test_user_first_name_and_initials():
    assert ALICE.first_name == "Alice"
    assert ALICE.initials == "AJ"
    assert BOB.initials == "BO"


# --- Tasks ---

def test_is_new_matches_assigned_and_not_acknowledged():
    for assignees in _subsets(USERS):
        for acknowledged in _subsets([u.id for u in USERS]):
            task = TaskModel(title="T", assignees=list(assignees), acknowledged_by=set(acknowledged))
            for user in USERS:
                expected = user in assignees and user.id not in acknowledged
                assert task.is_new(user.id) is expected


def test_last_activity_defaults_to_created_at():
    created = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    task = TaskModel(title="T", created_at=created)
    assert task.last_activity == created


def test_task_status_is_validated():
    with pytest.raises(ValidationError):
        TaskModel(title="T", status="archived")


def test_overdue_and_due_flags():
    now = datetime.now(timezone.utc)
    yesterday = TaskModel(title="T", due_date=now - timedelta(days=1))
    assert yesterday.is_overdue

    yesterday.status = "done"
    assert not yesterday.is_overdue

    assert TaskModel(title="T", due_date=now).is_due_today
    assert TaskModel(title="T", due_date=now + timedelta(days=1)).is_due_tomorrow
    assert not TaskModel(title="T").is_overdue


def test_subtask_progress():
    task = TaskModel(title="T", subtasks=[
        SubtaskModel(title="a", is_done=True),
        SubtaskModel(title="b"),
        SubtaskModel(title="c", is_done=True),
    ])
    assert task.subtask_progress == (2, 3)
    assert TaskModel(title="T").subtask_progress == (0, 0)


def test_subtask_overdue_ignores_done():
    past = datetime.now(timezone.utc) - timedelta(days=2)
    assert SubtaskModel(title="s", due_date=past).is_overdue
    assert not SubtaskModel(title="s", due_date=past, is_done=True).is_overdue


def test_attachment_helpers():
    doc = AttachmentModel(type="document", file_name="Floor.Plan.PDF", file_size=3_200_000, uploaded_by=ALICE)
    assert doc.is_instruction and not doc.is_deliverable
    assert doc.file_extension == "pdf"
    assert doc.file_size_formatted == "3.2 MB"

    photo = AttachmentModel(type="image", category="work", file_name="noext", uploaded_by=BOB)
    assert photo.is_deliverable
    assert photo.file_extension == ""


def test_attachment_type_is_validated():
    with pytest.raises(ValidationError):
        AttachmentModel(type="audio", file_name="x.mp3", uploaded_by=ALICE)


# --- Messages ---

def test_message_is_frozen():
    message = MessageModel(content="hi", sender=ALICE)
    with pytest.raises(ValidationError):
        message.content = "edited"


def test_sender_always_reads_own_message():
    message = MessageModel(content="hi", sender=ALICE)
    assert message.is_read("a")
    assert not message.is_read("b")

    read = message.read("b")
    assert read is not message
    assert read.is_read("b") and not message.is_read("b")
    assert read.read("b") is read


def test_message_kind_round_trips_through_discriminator():
    ref = SubtaskReference(subtask_id="s1", subtask_title="Sand")
    message = MessageModel(content='completed "Sand"', sender=BOB, kind=SubtaskCompletedKind(subtask=ref))
    assert message.is_system_event

    restored = MessageModel.model_validate(message.model_dump())
    assert isinstance(restored.kind, SubtaskCompletedKind)
    assert restored.kind.subtask == ref

    assert isinstance(MessageModel(content="x", sender=BOB).kind, RegularKind)


def test_unknown_message_kind_is_rejected():
    with pytest.raises(ValidationError):
        MessageModel(content="x", sender=BOB, kind={"kind": "task_exploded"})


def test_quote_captures_first_name_and_content():
    original = MessageModel(content="Bring the ladder", sender=ALICE)
    quote = QuotedMessage.from_message(original)
    assert quote.sender_name == "Alice"
    assert quote.content == "Bring the ladder"
    assert quote.message_id == original.id


# --- Activity ---

@pytest.mark.parametrize("activity_type,expected", [
    ("task_assigned", "Alice assigned you: Paint"),
    ("task_completed", "Alice completed: Paint"),
    ("task_reopened", "Alice reopened: Paint"),
    ("task_created", "Alice created: Paint"),
])
def test_activity_description(activity_type, expected):
    activity = ActivityModel(
        type=activity_type, actor_id="a", actor_name="Alice Johnson",
        project_id="p", project_name="P", task_id="t", task_title="Paint",
    )
    assert activity.description_for("b") == expected


def test_message_activity_description_falls_back():
    kwargs = dict(type="message_sent", actor_id="a", actor_name="Alice Johnson", project_id="p", project_name="P")
    assert ActivityModel(message_preview="Ready?", **kwargs).description_for("b") == "Alice: Ready?"
    assert ActivityModel(**kwargs).description_for("b") == "Alice: sent a message"


def test_assignment_description_names_the_assignee_for_others():
    activity = ActivityModel(
        type="task_assigned", actor_id="a", actor_name="Alice Johnson",
        assignee_id="b", assignee_name="Bob Garcia",
        project_id="p", project_name="P", task_id="t", task_title="Paint",
    )
    assert activity.description_for("b") == "Alice assigned you: Paint"
    assert activity.description_for("c") == "Alice assigned Bob: Paint"


# --- Projects ---

def test_project_admin_and_members():
    project = ProjectModel(name="Kitchen Renovation", members=[BOB, ALICE])
    assert project.admin.id == "b"
    assert project.is_member("a") and not project.is_member("c")
    assert project.initials == "KR"
    assert ProjectModel(name="Garage").initials == "GA"
    assert ProjectModel(name="Empty").admin is None


def test_project_unread_bookkeeping():
    project = ProjectModel(name="P", members=[ALICE, BOB, CAROL])
    project.mark_unread_for_members("t1", except_user_id="a")
    project.add_unread_task("t2", "b")

    assert project.unread_count("a") == 0
    assert project.unread_count("b") == 2
    assert project.is_task_unread("t1", "c")

    project.mark_task_as_read("t1", "b")
    project.mark_task_as_read("t1", "nobody")
    assert project.unread_task_ids["b"] == {"t2"}

    project.forget_task("t2")
    assert project.unread_count("b") == 0


def test_task_lists_sorted_by_last_activity():
    base = datetime(2026, 3, 2, tzinfo=timezone.utc)
    old = TaskModel(title="old", created_at=base)
    fresh = TaskModel(title="fresh", created_at=base + timedelta(hours=1))
    done = TaskModel(title="done", status="done", created_at=base)
    project = ProjectModel(name="P", tasks=[old, done, fresh])

    assert [t.title for t in project.pending_tasks] == ["fresh", "old"]
    assert [t.title for t in project.completed_tasks] == ["done"]
    assert project.pending_task_count == 2 and project.completed_task_count == 1


def test_sorted_messages_ignores_insertion_order():
    base = datetime(2026, 3, 2, tzinfo=timezone.utc)
    late = MessageModel(content="late", sender=ALICE, timestamp=base + timedelta(minutes=5))
    early = MessageModel(content="early", sender=BOB, timestamp=base)
    project = ProjectModel(name="P", messages=[late, early])

    assert [m.content for m in project.sorted_messages()] == ["early", "late"]
    assert project.last_message.content == "late"


def test_attachments_grouped_by_task():
    linked = ProjectAttachmentModel(type="image", file_name="a.jpg", uploaded_by=ALICE, linked_task_id="t1")
    loose = ProjectAttachmentModel(type="document", file_name="b.pdf", uploaded_by=ALICE)
    project = ProjectModel(name="P", attachments=[linked, loose])

    groups = project.attachments_by_task()
    assert [a.file_name for a in groups["t1"]] == ["a.jpg"]
    assert [a.file_name for a in groups[None]] == ["b.pdf"]
    assert loose.is_ungrouped and not linked.is_ungrouped


# --- Dates & sizes ---

@pytest.mark.parametrize("size,expected", [
    (0, "0 bytes"),
    (999, "999 bytes"),
    (245_000, "245 KB"),
    (3_200_000, "3.2 MB"),
    (1_500_000_000, "1.5 GB"),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_date_helpers_with_explicit_now():
    now = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)
    assert is_before_today(datetime(2026, 3, 1, 23, 59, tzinfo=timezone.utc), now)
    assert not is_before_today(datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc), now)
    assert is_today(datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc), now)
    assert is_tomorrow(datetime(2026, 3, 3, 8, 0, tzinfo=timezone.utc), now)
    assert not is_before_today(None, now)
