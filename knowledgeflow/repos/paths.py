"""Document paths shared by the Learner and Instructor services.

Layout of the shared store:

  users/{username}                               account record
  emails/{email}                                  {username}, claims an address
  courses/{courseId}                             course with lessons/quizzes
  learners/{username}/enrollments/{courseId}     {courseId, enrolledAt}
  learners/{username}/lastAccessed/{courseId}    {at}
  learners/{username}/courseProgress/{courseId}  progress record
"""

from __future__ import annotations

USERS = "users"
EMAILS = "emails"
COURSES = "courses"
LEARNERS = "learners"


class InvalidPathSegmentError(ValueError):
    pass


def join_path(*segments: str) -> str:
    for segment in segments:
        if not segment or "/" in segment:
            raise InvalidPathSegmentError(f"invalid path segment: {segment!r}")
    return "/".join(segments)


def parent_and_name(path: str) -> tuple[str, str]:
    parent, _, name = path.rpartition("/")
    return parent, name


def user_path(username: str) -> str:
    return join_path(USERS, username)


def email_path(email: str) -> str:
    return join_path(EMAILS, email)


def course_path(course_id: str) -> str:
    return join_path(COURSES, course_id)


def enrollments_path(username: str) -> str:
    return join_path(LEARNERS, username, "enrollments")


def enrollment_path(username: str, course_id: str) -> str:
    return join_path(LEARNERS, username, "enrollments", course_id)


def last_accessed_path(username: str, course_id: str) -> str:
    return join_path(LEARNERS, username, "lastAccessed", course_id)


def progress_path(username: str, course_id: str) -> str:
    return join_path(LEARNERS, username, "courseProgress", course_id)
