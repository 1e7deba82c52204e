"""Message catalogue for errors and system timeline messages."""

TRANSLATIONS = {
    "en": {
        # Errors
        "errors.engine_error": "The operation could not be completed",
        "errors.resource_not_found": "Resource not found",
        "errors.validation_error": "Validation error",
        "errors.limit_exceeded": "Task limit reached",
        "errors.invariant_violation": "Operation is not allowed in the current state",
        "errors.task_not_found": "Task {task_id} not found",
        "errors.project_not_found": "Project {project_id} not found",
        "errors.sprint_not_found": "Sprint {sprint_id} not found",
        "errors.campaign_not_found": "Campaign {campaign_id} not found",
        "errors.application_not_found": "Application {application_id} not found",
        "errors.message_not_found": "Timeline message {message_id} not found",
        "errors.title_required": "Title is required",
        "errors.price_negative": "Price must not be negative",
        "errors.invalid_video_url": "Video URL must be a valid YouTube link",
        "errors.comment_required": "Comment text is required",
        "errors.content_required": "Message content is required",
        "errors.rating_range": "Rating must be between 1 and 5",
        "errors.task_limit": (
            "You can only work on {limit} task(s) at a time. "
            "Complete your current tasks to unlock more slots."
        ),
        "errors.eligibility_check_failed": "An error occurred while checking your eligibility.",
        "errors.already_applied": "Student {student_id} has already applied to this task",
        "errors.application_assigned": "The assigned student's application can only be withdrawn by reassigning the task",
        "errors.task_not_open": "Task {task_id} is not open for applications",
        "errors.already_assigned": "Task {task_id} is already assigned to another student",
        "errors.illegal_transition": "Cannot change status from {current} to {target}",
        "errors.not_recurring": "Task {task_id} is not a recurring task",
        "errors.task_locked": "Task {task_id} is completed and can no longer be changed",
        "errors.message_deleted": "Deleted messages cannot be edited",
        "errors.not_message_author": "Only the author can change this message",
        "errors.system_message_immutable": "System messages cannot be changed",
        "errors.review_exists": "A {reviewer_type} review already exists for this task",
        "errors.review_requires_completion": "Reviews can only be left on completed tasks",
        "errors.library_kind_mismatch": "Payload kind {kind} does not match task kind {expected}",
        "errors.not_library_item": "Task {task_id} is not a library item",
        "errors.library_status_on_create": "Library items must be created as library items",
        "errors.invalid_library_kind": "{kind} is not a library item kind",
        "errors.no_active_assignment": "Task {task_id} has no active assignment",
        # Timeline
        "timeline.assigned": "{student_name} has been assigned to this task",
        "timeline.reassigned": "Task was reassigned. Reason: {reason}",
        "timeline.recurring_completed": "Marked task as completed. Next due: {next_due}",
        "timeline.recurring_incomplete": "Marked task as incomplete",
        "timeline.due_again": "Task is due again",
        "timeline.library_created": '{kind} "{title}" was created',
        "timeline.details_header": "Task details: {title}",
        "timeline.details_description": "Description: {description}",
        "timeline.details_category": "Category: {category}",
        "timeline.details_price": "Budget: {price} {currency} (you earn {earnings} {currency})",
        "timeline.details_due": "Due date: {due_date}",
        "timeline.details_sop": "Standard operating procedure: {sop}",
        "timeline.details_video": "Video brief: {video_url}",
        "timeline.details_skills": "Required skills: {skills}",
        "timeline.welcome": (
            "Welcome to the task timeline! This is where you can communicate with each other "
            "about the task. Feel free to ask questions, share updates, or provide feedback."
        ),
        # Audit
        "audit.created": "Created task",
        "audit.created_library": "Created {kind}",
        "audit.updated": "Updated {fields}",
        "audit.status_changed": "Changed status to {status}",
        "audit.priority_changed": "Changed priority to {priority}",
        "audit.published": "Published task",
        "audit.unpublished": "Unpublished task",
        "audit.auto_post_toggled": "Set auto-post to timeline to {value}",
        "audit.completed": "Marked task as completed",
        "audit.recurring_completed": "Marked recurring task as completed",
        "audit.recurring_incomplete": "Marked recurring task as incomplete",
        "audit.reassigned": "Reassigned task: {reason}",
        "audit.application_status": "Set application of {student_name} to {status}",
        "audit.library_updated": "Updated {kind} contents",
    },
    "hi": {
        "errors.resource_not_found": "संसाधन नहीं मिला",
        "errors.validation_error": "सत्यापन त्रुटि",
        "errors.limit_exceeded": "कार्य सीमा पूरी हो गई",
        "errors.task_limit": (
            "आप एक समय में केवल {limit} कार्य पर काम कर सकते हैं। "
            "और स्लॉट खोलने के लिए अपने मौजूदा कार्य पूरे करें।"
        ),
        "timeline.assigned": "{student_name} को यह कार्य सौंपा गया है",
        "timeline.due_again": "कार्य फिर से देय है",
    },
}
