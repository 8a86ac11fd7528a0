"""Email templates for LearnHub.

Every renderer returns ``(html, plain_text)``. User-supplied values (names,
course titles) are HTML-escaped before they reach the markup.

Palette:
- Primary indigo: #4F46E5
- Background: #F8FAFC
- Text: #1E293B
- Muted: #64748B
- Border: #E2E8F0
"""

from datetime import date, datetime
from html import escape


BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - LearnHub</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F8FAFC; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #F8FAFC;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; max-width: 600px;">
          <tr>
            <td style="padding: 28px 40px 20px; text-align: center; border-bottom: 1px solid #E2E8F0;">
              <h1 style="margin: 0; font-size: 26px; font-weight: 700; color: #4F46E5;">LearnHub</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 36px 40px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 20px 40px; background-color: #F1F5F9; border-top: 1px solid #E2E8F0; border-radius: 0 0 12px 12px;">
              <p style="margin: 0; font-size: 12px; color: #64748B; text-align: center; line-height: 1.6;">
                &copy; {year} LearnHub. This message was sent automatically, please do not reply.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

BUTTON = (
    '<p style="margin: 28px 0; text-align: center;">'
    '<a href="{url}" style="background-color: #4F46E5; color: #FFFFFF; padding: 12px 24px; '
    'text-decoration: none; border-radius: 6px; display: inline-block;">{label}</a></p>'
)

PLAIN_FOOTER = (
    "---\n© {year} LearnHub. This message was sent automatically, please do not reply."
)


def _wrap(title: str, content: str) -> str:
    return BASE_TEMPLATE.format(title=title, content=content, year=datetime.now().year)


def _plain(body: str) -> str:
    return f"{body.strip()}\n\n{PLAIN_FOOTER.format(year=datetime.now().year)}"


def _format_date(value: date | datetime | None) -> str:
    if value is None:
        return "to be confirmed"
    return value.strftime("%d %b %Y")


# ==============================================================================
# Template: Pre-joining welcome
# ==============================================================================

PRE_JOINING_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1E293B;">Hello {first_name}!</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #334155; line-height: 1.6;">
  We're excited to have you join our team soon!
</p>
<p style="margin: 0 0 16px; font-size: 16px; color: #334155;">
  <strong>Expected start date:</strong> {start_date}
</p>
<p style="margin: 0 0 8px; font-size: 16px; color: #334155;">Please make sure to:</p>
<ul style="margin: 0 0 16px; color: #334155; line-height: 1.6;">
  <li>Complete any pre-joining documentation</li>
  <li>Review the course materials assigned to you</li>
  <li>Prepare any questions for your first day</li>
</ul>
{button}
<p style="margin: 0; font-size: 14px; color: #64748B;">Looking forward to having you on the team!</p>
"""


def render_pre_joining_welcome(
    first_name: str,
    date_of_joining: date | None,
    portal_url: str,
) -> tuple[str, str]:
    """Welcome email for an employee whose status is Pre-Joining."""
    start_date = _format_date(date_of_joining)
    content = PRE_JOINING_CONTENT.format(
        first_name=escape(first_name),
        start_date=start_date,
        button=BUTTON.format(url=escape(portal_url), label="Access Your Portal"),
    )
    plain = f"""
Hello {first_name}!

We're excited to have you join our team soon!

Expected start date: {start_date}

Please make sure to:
- Complete any pre-joining documentation
- Review the course materials assigned to you
- Prepare any questions for your first day

Access your portal: {portal_url}

Looking forward to having you on the team!
"""
    return _wrap("Welcome", content), _plain(plain)


# ==============================================================================
# Template: Course assigned
# ==============================================================================

COURSE_ASSIGNED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1E293B;">New course assigned</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #334155; line-height: 1.6;">
  Hi <strong>{employee_name}</strong>, you have been enrolled in
  <strong>{course_name}</strong>.
</p>
<div style="background-color: #EEF2FF; border-left: 4px solid #4F46E5; padding: 12px 16px; border-radius: 0 8px 8px 0;">
  <p style="margin: 0; font-size: 14px; color: #3730A3;">{rule_text}</p>
</div>
{button}
"""


def render_course_assigned(
    employee_name: str,
    course_name: str,
    course_url: str,
    completion_rule_text: str,
) -> tuple[str, str]:
    content = COURSE_ASSIGNED_CONTENT.format(
        employee_name=escape(employee_name),
        course_name=escape(course_name),
        rule_text=escape(completion_rule_text),
        button=BUTTON.format(url=escape(course_url), label="Start Course"),
    )
    plain = f"""
Hi {employee_name},

You have been enrolled in "{course_name}".
{completion_rule_text}.

Start the course: {course_url}
"""
    return _wrap("New course assigned", content), _plain(plain)


# ==============================================================================
# Template: Course completed
# ==============================================================================

COURSE_COMPLETED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1E293B;">Congratulations, {employee_name}!</h2>
<div style="background-color: #F0FDF4; border-radius: 12px; padding: 20px; margin: 0 0 16px;">
  <p style="margin: 0; font-size: 16px; color: #166534; line-height: 1.5;">
    You completed <strong>{course_name}</strong> on <strong>{completed_on}</strong>
    with an overall progress of <strong>{progress}%</strong>.
  </p>
</div>
{button}
"""


def render_course_completed(
    employee_name: str,
    course_name: str,
    completion_date: datetime,
    progress_percent: int,
    dashboard_url: str,
) -> tuple[str, str]:
    completed_on = _format_date(completion_date)
    content = COURSE_COMPLETED_CONTENT.format(
        employee_name=escape(employee_name),
        course_name=escape(course_name),
        completed_on=completed_on,
        progress=progress_percent,
        button=BUTTON.format(url=escape(dashboard_url), label="View My Courses"),
    )
    plain = f"""
Congratulations, {employee_name}!

You completed "{course_name}" on {completed_on} with an overall progress of {progress_percent}%.

View your courses: {dashboard_url}
"""
    return _wrap("Course completed", content), _plain(plain)


# ==============================================================================
# Template: Training session scheduled / assigned
# ==============================================================================

TRAINING_SESSION_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1E293B;">{heading}</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #334155; line-height: 1.6;">
  Hi <strong>{recipient_name}</strong>, {intro}
</p>
<table role="presentation" cellpadding="0" cellspacing="0" style="margin: 0 0 16px; font-size: 15px; color: #334155; line-height: 1.8;">
  <tr><td style="padding-right: 16px; color: #64748B;">Session</td><td><strong>{session_name}</strong></td></tr>
  <tr><td style="padding-right: 16px; color: #64748B;">Type</td><td>{session_type}</td></tr>
  <tr><td style="padding-right: 16px; color: #64748B;">Date</td><td>{session_date}</td></tr>
  <tr><td style="padding-right: 16px; color: #64748B;">Time</td><td>{time_range} UTC</td></tr>
  <tr><td style="padding-right: 16px; color: #64748B;">Trainer</td><td>{trainer_name}</td></tr>
</table>
{button}
"""


def render_training_session(
    recipient_name: str,
    session_name: str,
    session_type: str,
    start: datetime,
    end: datetime,
    trainer_name: str,
    meeting_link: str,
    meeting_platform: str | None = None,
    newly_assigned: bool = False,
) -> tuple[str, str]:
    """Invitation for a scheduled session, or for being added to one later."""
    if newly_assigned:
        heading = "You have been added to a training session"
        intro = "you have been added to the following session."
    else:
        heading = "Training session scheduled"
        intro = "a training session has been scheduled for you."
    session_date = _format_date(start)
    time_range = f"{start:%H:%M} - {end:%H:%M}"
    join_label = f"Join on {meeting_platform}" if meeting_platform else "Join Meeting"

    content = TRAINING_SESSION_CONTENT.format(
        heading=heading,
        recipient_name=escape(recipient_name),
        intro=intro,
        session_name=escape(session_name),
        session_type=escape(session_type),
        session_date=session_date,
        time_range=time_range,
        trainer_name=escape(trainer_name),
        button=BUTTON.format(url=escape(meeting_link), label=escape(join_label)),
    )
    plain = f"""
Hi {recipient_name},

{intro[0].upper()}{intro[1:]}

Session: {session_name}
Type: {session_type}
Date: {session_date}
Time: {time_range} UTC
Trainer: {trainer_name}

Meeting link: {meeting_link}
"""
    return _wrap(heading, content), _plain(plain)


# ==============================================================================
# Template: Project submitted
# ==============================================================================

PROJECT_SUBMITTED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1E293B;">Project submitted for review</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #334155; line-height: 1.6;">
  Hi <strong>{reviewer_name}</strong>, <strong>{trainee_name}</strong> has submitted
  <strong>{project_name}</strong> and it is waiting for evaluation.
</p>
{button}
"""


def render_project_submitted(
    reviewer_name: str,
    trainee_name: str,
    project_name: str,
    review_url: str,
) -> tuple[str, str]:
    content = PROJECT_SUBMITTED_CONTENT.format(
        reviewer_name=escape(reviewer_name),
        trainee_name=escape(trainee_name),
        project_name=escape(project_name),
        button=BUTTON.format(url=escape(review_url), label="Review Submission"),
    )
    plain = f"""
Hi {reviewer_name},

{trainee_name} has submitted "{project_name}" and it is waiting for evaluation.

Review the submission: {review_url}
"""
    return _wrap("Project submitted", content), _plain(plain)
