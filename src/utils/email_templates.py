"""Email templates.

Each template renders a subject and an HTML body with Jinja2. Bodies are
autoescaped since names and departments come from user input.
"""

from typing import Any, Optional

import jinja2

from config import FRONTEND_URL
from utils.mailer import EmailMessage

_LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #333;">{{ heading }}</h2>
  {{ content|safe }}
  <p style="color: #666; font-size: 12px; margin-top: 30px;">
    This is an automated message. Please do not reply.
  </p>
</div>
"""

_OTP_BODY = """
<p>Hello {{ name }},</p>
<p>{{ intro }}</p>
<div style="background-color: #f5f5f5; padding: 15px; text-align: center; font-size: 24px; letter-spacing: 5px;">
  <strong>{{ code }}</strong>
</div>
<p>This code expires in {{ minutes }} minutes.</p>
<p>If you did not request this, you can ignore this email.</p>
"""

_FACULTY_CREDENTIALS_BODY = """
<p>Hello {{ name }},</p>
<p>An account has been created for you at <strong>{{ university_name }}</strong>.</p>
<ul>
  <li>Email: {{ email }}</li>
  <li>Temporary password: <code>{{ temporary_password }}</code></li>
  <li>University code: {{ university_code }}</li>
</ul>
<p>Finish your profile within {{ hours }} hours:</p>
<p><a href="{{ link }}">{{ link }}</a></p>
"""

_FACULTY_COMPLETION_BODY = """
<p>Hello {{ name }},</p>
<p>Finish setting up your faculty account at <strong>{{ university_name }}</strong> within
{{ hours }} hours using this link. Earlier links no longer work.</p>
<p><a href="{{ link }}">{{ link }}</a></p>
"""

_FACULTY_PENDING_BODY = """
<p>Hello {{ admin_name }},</p>
<p>{{ name }} ({{ email }}, employee id {{ employee_id }}, {{ department }}) registered
with a faculty registration code and is waiting for your approval.</p>
"""

_FACULTY_APPROVED_BODY = """
<p>Hello {{ name }},</p>
<p>Your faculty account at <strong>{{ university_name }}</strong> has been approved.
You can now log in with your email and password.</p>
"""

_STUDENT_WELCOME_BODY = """
<p>Hello {{ name }},</p>
<p>Your student account at <strong>{{ university_name }}</strong> is active.</p>
<p>Register number: {{ register_number }}</p>
"""

_ADMIN_WELCOME_BODY = """
<p>Hello {{ name }},</p>
<p><strong>{{ university_name }}</strong> is set up. Share this university code with
your faculty and students:</p>
<div style="background-color: #f5f5f5; padding: 15px; text-align: center; font-size: 20px;">
  <strong>{{ university_code }}</strong>
</div>
"""


class EmailTemplate:
    """Renders one kind of email.

    The body fragment is rendered first, then wrapped in the shared layout.
    """

    def __init__(self, subject: str, heading: str, body: str):
        """Initialize the template.

        Args:
            subject: Jinja2 template for the subject line.
            heading: Jinja2 template for the heading.
            body: Jinja2 template for the HTML fragment.
        """
        self.subject = jinja2.Template(subject)
        self.heading = jinja2.Template(heading, autoescape=True)
        self.body = jinja2.Template(body, autoescape=True)
        self.layout = jinja2.Template(_LAYOUT, autoescape=True)

    def render(self, to: str, **context: Any) -> EmailMessage:
        content = self.body.render(**context)
        html = self.layout.render(heading=self.heading.render(**context), content=content)
        return EmailMessage(to=to, subject=self.subject.render(**context).strip(), html=html)


OTP_TEMPLATE = EmailTemplate(
    subject="{{ subject }}",
    heading="{{ subject }}",
    body=_OTP_BODY,
)
FACULTY_CREDENTIALS_TEMPLATE = EmailTemplate(
    subject="Your faculty account at {{ university_name }}",
    heading="Welcome to {{ university_name }}",
    body=_FACULTY_CREDENTIALS_BODY,
)
FACULTY_COMPLETION_TEMPLATE = EmailTemplate(
    subject="Complete your faculty registration",
    heading="Complete your registration",
    body=_FACULTY_COMPLETION_BODY,
)
FACULTY_PENDING_TEMPLATE = EmailTemplate(
    subject="Faculty registration awaiting approval: {{ name }}",
    heading="New faculty registration",
    body=_FACULTY_PENDING_BODY,
)
FACULTY_APPROVED_TEMPLATE = EmailTemplate(
    subject="Your faculty account has been approved",
    heading="Account approved",
    body=_FACULTY_APPROVED_BODY,
)
STUDENT_WELCOME_TEMPLATE = EmailTemplate(
    subject="Welcome to {{ university_name }}",
    heading="Registration complete",
    body=_STUDENT_WELCOME_BODY,
)
ADMIN_WELCOME_TEMPLATE = EmailTemplate(
    subject="{{ university_name }} is ready",
    heading="Your university has been created",
    body=_ADMIN_WELCOME_BODY,
)

_OTP_COPY = {
    "email-verify": (
        "Verify your email",
        "Use this code to verify your email address and continue registration:",
    ),
    "login-otp": ("Your login code", "Use this code to log in:"),
    "password-reset": (
        "Reset your password",
        "Use this code to reset your password:",
    ),
    "admin-signup": (
        "Your admin registration code",
        "Use this code to finish registering your university:",
    ),
}


def otp_email(to: str, name: Optional[str], code: str, purpose: str, minutes: int) -> EmailMessage:
    """Render an OTP email for the given challenge purpose."""
    subject, intro = _OTP_COPY[purpose]
    return OTP_TEMPLATE.render(
        to,
        subject=subject,
        intro=intro,
        name=name or "there",
        code=code,
        minutes=minutes,
    )


def completion_link(token: str) -> str:
    return f"{FRONTEND_URL.rstrip('/')}/faculty/complete-registration/{token}"


def faculty_credentials_email(
    faculty: Any, university: Any, temporary_password: str, token: str, hours: int
) -> EmailMessage:
    return FACULTY_CREDENTIALS_TEMPLATE.render(
        faculty.email,
        name=faculty.name,
        email=faculty.email,
        university_name=university.name,
        university_code=university.university_code,
        temporary_password=temporary_password,
        link=completion_link(token),
        hours=hours,
    )


def faculty_completion_email(faculty: Any, university: Any, token: str, hours: int) -> EmailMessage:
    return FACULTY_COMPLETION_TEMPLATE.render(
        faculty.email,
        name=faculty.name,
        university_name=university.name,
        link=completion_link(token),
        hours=hours,
    )


def faculty_pending_email(admin: Any, faculty: Any) -> EmailMessage:
    return FACULTY_PENDING_TEMPLATE.render(
        admin.email,
        admin_name=admin.name,
        name=faculty.name,
        email=faculty.email,
        employee_id=faculty.employee_id,
        department=faculty.department,
    )


def faculty_approved_email(faculty: Any, university: Any) -> EmailMessage:
    return FACULTY_APPROVED_TEMPLATE.render(
        faculty.email, name=faculty.name, university_name=university.name
    )


def student_welcome_email(student: Any, university: Any) -> EmailMessage:
    return STUDENT_WELCOME_TEMPLATE.render(
        student.email,
        name=student.name,
        university_name=university.name,
        register_number=student.register_number,
    )


def admin_welcome_email(admin: Any, university: Any) -> EmailMessage:
    return ADMIN_WELCOME_TEMPLATE.render(
        admin.email,
        name=admin.name,
        university_name=university.name,
        university_code=university.university_code,
    )
