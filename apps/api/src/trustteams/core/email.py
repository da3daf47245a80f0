"""
Email Service using Resend

Handles the transactional emails of the platform: account verification,
welcome, new opportunity broadcast and application status changes.

Every sender returns a bool. Callers decide whether a failed send matters:
for side-effect emails it is logged and ignored, for resend-verification it
is the error reported to the user.
"""

import asyncio
import logging
from html import escape

import resend

from trustteams.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key

EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url.rstrip("/")

_STYLE = """
        <style>
            body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; background-color: #f8fafc; }
            .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; background-color: #ffffff; }
            .header { color: #4c51bf; margin-bottom: 24px; }
            .button { display: inline-block; background-color: #667eea; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
            .info-box { background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }
            .success-box { background-color: #d1fae5; border: 1px solid #10b981; padding: 16px; border-radius: 8px; margin: 16px 0; }
            .notes-box { background-color: #f9fafb; border-left: 4px solid #667eea; padding: 16px; margin: 16px 0; }
            .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
        </style>
"""


def _render(title: str, body: str) -> str:
    """Wrap a template body in the common TrustTeams layout."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>{title}</title>
        {_STYLE}
    </head>
    <body>
        <div class="container">
            {body}
            <div class="footer">
                <p>TrustTeams - Connecting students, universities and industry</p>
            </div>
        </div>
    </body>
    </html>
    """


def build_verification_link(token: str) -> str:
    """Frontend URL that exchanges a verification token."""
    return f"{FRONTEND_URL}/verify-email/{token}"


def build_opportunity_link(opportunity_id: str) -> str:
    """Frontend deep link to an opportunity."""
    return f"{FRONTEND_URL}/opportunities/{opportunity_id}"


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_verification_email(to_email: str, name: str, token: str) -> bool:
    """Send the signup verification email."""
    safe_name = escape(name)
    verification_url = build_verification_link(token)

    html_content = _render(
        "Verify Your Email - TrustTeams",
        f"""
            <h1 class="header">Verify Your Email</h1>

            <p>Hello {safe_name},</p>

            <p>Welcome to TrustTeams! Please verify your email address to activate your account.</p>

            <a href="{verification_url}" class="button">Verify Email</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{verification_url}</p>

            <p><strong>This link expires in {settings.verification_token_expiry_hours} hours.</strong></p>

            <p>If you didn't create a TrustTeams account, you can safely ignore this email.</p>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject="Verify Your Email - TrustTeams",
        html_content=html_content,
    )


async def send_resend_verification_email(to_email: str, name: str, token: str) -> bool:
    """Send a fresh verification link after the user asked for one."""
    safe_name = escape(name)
    verification_url = build_verification_link(token)

    html_content = _render(
        "Resend Verification - TrustTeams",
        f"""
            <h1 class="header">Your New Verification Link</h1>

            <p>Hello {safe_name},</p>

            <p>You requested a new verification link. Any previous link no longer works.</p>

            <a href="{verification_url}" class="button">Verify Email</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{verification_url}</p>

            <p><strong>This link expires in {settings.verification_token_expiry_hours} hours.</strong></p>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject="Resend Verification - TrustTeams",
        html_content=html_content,
    )


async def send_welcome_email(to_email: str, name: str) -> bool:
    """Send the welcome email once the address is verified."""
    safe_name = escape(name)
    login_url = f"{FRONTEND_URL}/login"

    html_content = _render(
        "Welcome to TrustTeams",
        f"""
            <h1 class="header">Email Verified!</h1>

            <p>Hello {safe_name},</p>

            <div class="success-box">
                <p>Your email address has been verified. You can now sign in to TrustTeams.</p>
            </div>

            <p>Students and academic leaders can sign in as soon as their university approves the registration.</p>

            <a href="{login_url}" class="button">Sign In</a>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject="Welcome to TrustTeams - Email Verified!",
        html_content=html_content,
    )


async def send_new_opportunity_email(
    to_email: str,
    student_name: str,
    posted_by_name: str,
    title: str,
    opportunity_type: str,
    description: str,
    requirements: str | None,
    stipend: str | None,
    duration: str | None,
    location: str | None,
    deadline: str | None,
    opportunity_link: str,
) -> bool:
    """Notify a student about a newly posted opportunity."""
    # Escape user inputs to prevent XSS
    safe_student_name = escape(student_name)
    safe_posted_by = escape(posted_by_name)
    safe_title = escape(title)
    safe_type = escape(opportunity_type)
    safe_description = escape(description)
    safe_requirements = escape(requirements or "Not specified")
    safe_stipend = escape(stipend or "Not specified")
    safe_duration = escape(duration or "Not specified")
    safe_location = escape(location or "Not specified")
    safe_deadline = escape(deadline or "No deadline")

    html_content = _render(
        "New Opportunity Available - TrustTeams",
        f"""
            <h1 class="header">New Opportunity Available!</h1>

            <p>Hello {safe_student_name},</p>

            <p><strong>{safe_posted_by}</strong> has just posted a new opportunity that might be a good fit for you.</p>

            <div class="info-box">
                <h2>{safe_title}</h2>
                <p><strong>Type:</strong> {safe_type}</p>
                <p><strong>Location:</strong> {safe_location}</p>
                <p><strong>Stipend:</strong> {safe_stipend}</p>
                <p><strong>Duration:</strong> {safe_duration}</p>
                <p><strong>Deadline:</strong> {safe_deadline}</p>
                <p><strong>Description:</strong> {safe_description}</p>
                <p><strong>Requirements:</strong> {safe_requirements}</p>
            </div>

            <a href="{opportunity_link}" class="button">View &amp; Apply</a>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject="New Opportunity Available - TrustTeams",
        html_content=html_content,
    )


async def send_application_confirmation(
    to_email: str,
    student_name: str,
    opportunity_title: str,
    organization_name: str,
    application_id: str,
) -> bool:
    """Confirm to a student that their application was received."""
    safe_student_name = escape(student_name)
    safe_title = escape(opportunity_title)
    safe_organization = escape(organization_name)
    applications_url = f"{FRONTEND_URL}/student/applications"

    html_content = _render(
        "Application Submitted - TrustTeams",
        f"""
            <h1 class="header">Application Submitted</h1>

            <p>Hello {safe_student_name},</p>

            <p>Your application for <strong>{safe_title}</strong> posted by <strong>{safe_organization}</strong> has been received.</p>

            <div class="info-box">
                <p><strong>Application ID:</strong> {escape(application_id)}</p>
                <p><strong>Status:</strong> Pending review</p>
            </div>

            <p>We'll email you as soon as the reviewer makes a decision.</p>

            <a href="{applications_url}" class="button">Track Your Applications</a>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject=f"Application Submitted Successfully - {safe_title}",
        html_content=html_content,
    )


async def send_application_approved(
    to_email: str,
    student_name: str,
    opportunity_title: str,
    reviewer_name: str,
    review_notes: str | None = None,
) -> bool:
    """Tell a student their application was approved."""
    safe_student_name = escape(student_name)
    safe_title = escape(opportunity_title)
    safe_reviewer = escape(reviewer_name)

    notes_section = ""
    if review_notes:
        notes_section = f"""
            <div class="notes-box">
                <p><strong>Notes from {safe_reviewer}:</strong></p>
                <p>{escape(review_notes)}</p>
            </div>
        """

    html_content = _render(
        "Application Approved - TrustTeams",
        f"""
            <h1 class="header">Congratulations!</h1>

            <p>Hello {safe_student_name},</p>

            <div class="success-box">
                <p>Your application for <strong>{safe_title}</strong> has been <strong>approved</strong> by {safe_reviewer}.</p>
            </div>

            {notes_section}

            <p>The poster will be in touch with the next steps.</p>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject=f"Application Approved - {safe_title}",
        html_content=html_content,
    )


async def send_application_rejected(
    to_email: str,
    student_name: str,
    opportunity_title: str,
    reviewer_name: str,
    review_notes: str | None = None,
) -> bool:
    """Tell a student their application was not selected."""
    safe_student_name = escape(student_name)
    safe_title = escape(opportunity_title)
    safe_reviewer = escape(reviewer_name)

    notes_section = ""
    if review_notes:
        notes_section = f"""
            <div class="notes-box">
                <p><strong>Feedback from {safe_reviewer}:</strong></p>
                <p>{escape(review_notes)}</p>
            </div>
        """

    html_content = _render(
        "Application Update - TrustTeams",
        f"""
            <h1 class="header">Application Update</h1>

            <p>Hello {safe_student_name},</p>

            <p>Thank you for applying to <strong>{safe_title}</strong>. After careful review, {safe_reviewer} has decided not to move forward with your application at this time.</p>

            {notes_section}

            <p>New opportunities are posted regularly. Keep an eye on your inbox!</p>
        """,
    )
    return await send_email(
        to_email=to_email,
        subject=f"Application Update - {safe_title}",
        html_content=html_content,
    )
