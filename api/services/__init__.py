"""
API Services Layer.

Domain operations for API endpoints and background workers. Every function
takes the database session and collaborators explicitly and raises
core.exceptions errors.
"""

from api.services.applications import (
    submit_application,
    list_applications_for_job,
    list_applications_for_applicant,
    get_application,
    update_application_status,
    notify_status_change,
)

from api.services.jobs import (
    list_active_jobs,
    list_owned_jobs,
    get_job,
    create_job,
    update_job,
    toggle_job_status,
    reconcile_application_counts,
)

from api.services.phone_verification import (
    request_code,
    confirm_code,
    get_status,
)

from api.services.users import (
    register_user,
    authenticate,
    get_profile,
    update_profile,
    upload_profile_resume,
    delete_profile_resume,
    request_email_verification,
    confirm_email_verification,
)

__all__ = [
    # Applications
    "submit_application",
    "list_applications_for_job",
    "list_applications_for_applicant",
    "get_application",
    "update_application_status",
    "notify_status_change",
    # Jobs
    "list_active_jobs",
    "list_owned_jobs",
    "get_job",
    "create_job",
    "update_job",
    "toggle_job_status",
    "reconcile_application_counts",
    # Phone verification
    "request_code",
    "confirm_code",
    "get_status",
    # Users
    "register_user",
    "authenticate",
    "get_profile",
    "update_profile",
    "upload_profile_resume",
    "delete_profile_resume",
    "request_email_verification",
    "confirm_email_verification",
]
