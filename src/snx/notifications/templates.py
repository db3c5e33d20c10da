"""
Email templates for the Stellar Nexus Experience.

Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

BG_DARK = "#0B0F1A"
BG_CARD = "#131A2A"
ACCENT = "#7C3AED"
TEXT_PRIMARY = "#F5F7FB"
TEXT_SECONDARY = "#94A3B8"
BORDER = "#1E293B"

APP_NAME = "Stellar Nexus Experience"
DEFAULT_MESSAGE = "Join me on Trustless Work and discover the future of trustless work on Stellar!"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_DARK}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_DARK};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 40px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 32px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                This email was sent by {APP_NAME}.<br>
                                If you didn't expect this email, you can safely ignore it.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {ACCENT}; border-radius: 8px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 14px 32px; color: #FFFFFF; font-size: 16px; font-weight: 600; text-decoration: none;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def referral_invitation(
    referrer_name: str,
    referral_code: str,
    referral_link: str,
    message: str | None = None,
) -> tuple[str, str, str]:
    """
    Invitation sent by an existing explorer to a friend's email.

    Returns:
        (subject, html_body, text_body)
    """
    name = referrer_name or "A friend"
    personal = message or DEFAULT_MESSAGE
    subject = f"{name} invited you to the {APP_NAME}"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; font-weight: 700; margin: 0 0 16px 0;">You're invited!</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">
    <strong style="color: {TEXT_PRIMARY};">{escape(name)}</strong> wants you to explore trustless escrow on Stellar.
</p>
<blockquote style="color: {TEXT_SECONDARY}; font-size: 15px; border-left: 3px solid {ACCENT}; margin: 0 0 16px 0; padding-left: 12px;">
    {escape(personal)}
</blockquote>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0;">
    Use referral code <strong style="color: {TEXT_PRIMARY};">{escape(referral_code)}</strong> when you connect your wallet.
</p>
{_button(referral_link, "Join the Nexus")}"""
    html_body = _base_layout(content)
    text_body = (
        f"{name} invited you to the {APP_NAME}.\n\n"
        f"{personal}\n\n"
        f"Referral code: {referral_code}\n"
        f"Join here: {referral_link}\n"
    )
    return subject, html_body, text_body
