"""Notification templates for loyalty events."""

from __future__ import annotations

import html
from dataclasses import dataclass

BRAND = "AGO WASH"
SIGNATURE = "AGO WASH Team"


@dataclass
class RenderedTemplate:
    subject: str
    text_body: str
    html_body: str


def _wrap_html(heading: str, paragraphs: list[str]) -> str:
    body = "\n".join(f"    <p>{paragraph}</p>" for paragraph in paragraphs)
    return f"""<html>
  <body>
    <h2>{BRAND} Loyalty Program - {heading}</h2>
{body}
  </body>
</html>"""


def render_tier_change(address: str, points: int, tier: str, *, direction: str = "upgraded") -> RenderedTemplate:
    """Render the admin alert sent when a member crosses a tier boundary."""

    label = "Upgrade" if direction == "upgraded" else "Downgrade"
    subject = f"[{BRAND}] User Tier {label} Notification"
    text_body = "\n".join(
        [
            f"User {address} has reached {points} points and is eligible for {tier} tier.",
            "Please update their NFT frame by visiting the admin dashboard or using the API.",
            "",
            "Thank you,",
            SIGNATURE,
        ]
    )
    html_body = _wrap_html(
        f"Tier {label}",
        [
            f"User <strong>{html.escape(address)}</strong> has reached <strong>{points}</strong> points "
            f"and is eligible for <strong>{html.escape(tier)}</strong> tier.",
            "Please update their NFT frame by visiting the admin dashboard or using the API.",
            f"Thank you,<br>{SIGNATURE}",
        ],
    )
    return RenderedTemplate(subject=subject, text_body=text_body, html_body=html_body)


def render_free_wash_activated(date: str) -> RenderedTemplate:
    subject = f"[{BRAND}] Free Wash Coupon Activated"
    text_body = "\n".join(
        [
            f"You have received a free wash coupon valid for 24 hours since your last transaction on {date}.",
            f"Visit any {BRAND} location to redeem your free wash.",
            "",
            f"Thank you for choosing {BRAND}!",
        ]
    )
    html_body = _wrap_html(
        "Free Wash Coupon",
        [
            "You have received a free wash coupon valid for 24 hours since your last transaction on "
            f"<strong>{html.escape(date)}</strong>.",
            f"Visit any {BRAND} location to redeem your free wash.",
            f"Thank you for choosing {BRAND}!",
        ],
    )
    return RenderedTemplate(subject=subject, text_body=text_body, html_body=html_body)


def render_free_wash_expired() -> RenderedTemplate:
    subject = f"[{BRAND}] Free Wash Coupon Expired"
    message = f"Your free wash at {BRAND} has expired! Visit us again for more offers."
    text_body = "\n".join([message, "", f"Thank you for choosing {BRAND}!"])
    html_body = _wrap_html("Free Wash Expired", [message, f"Thank you for choosing {BRAND}!"])
    return RenderedTemplate(subject=subject, text_body=text_body, html_body=html_body)


def render_package_redeemed(package_type: int, points: int) -> RenderedTemplate:
    subject = f"[{BRAND}] Package Redeemed Successfully"
    message = f"Congratulations! You have redeemed Package Type {package_type} using {points} points."
    text_body = "\n".join([message, "", f"Thank you for choosing {BRAND}!"])
    html_body = _wrap_html("Package Redeemed", [message, f"Thank you for choosing {BRAND}!"])
    return RenderedTemplate(subject=subject, text_body=text_body, html_body=html_body)


__all__ = [
    "RenderedTemplate",
    "render_free_wash_activated",
    "render_free_wash_expired",
    "render_package_redeemed",
    "render_tier_change",
]
