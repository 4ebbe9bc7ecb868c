# Global Constants

class TaskStatus:
    PENDING = "pending"
    DONE = "done"


class AttachmentTypes:
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    CONTACT = "contact"


class AttachmentCategories:
    REFERENCE = "reference"  # Instructions from the task creator (floor plans, blueprints, reference photos)
    WORK = "work"            # Deliverables uploaded by the team (progress photos, invoices)


class MessageKinds:
    REGULAR = "regular"
    SUBTASK_COMPLETED = "subtask_completed"
    SUBTASK_REOPENED = "subtask_reopened"


class ActivityTypes:
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_REOPENED = "task_reopened"
    TASK_CREATED = "task_created"
    MESSAGE_SENT = "message_sent"


class AuthStates:
    UNKNOWN = "unknown"
    UNAUTHENTICATED = "unauthenticated"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"


# Verbs used in companion chat messages when files are shared
SHARED_ATTACHMENT_NOUNS = {
    AttachmentTypes.IMAGE: "a photo",
    AttachmentTypes.VIDEO: "a video",
    AttachmentTypes.DOCUMENT: "a file",
    AttachmentTypes.CONTACT: "a contact",
}

ACCEPTED_PREFIX = "✓ Accepted"
DECLINED_PREFIX = "✗ Declined"
PROJECT_CREATED_PREVIEW = "Project created"
