"""Message bodies for billing notifications."""
from __future__ import annotations

from html import escape
from typing import NamedTuple, Sequence, Tuple

_REASONS = {
    "past_due": "your latest payment could not be collected",
    "unpaid": "your subscription has unpaid invoices",
    "canceled": "your subscription was canceled",
    "cancelled": "your subscription was canceled",
}


class OutboundEmail(NamedTuple):
    to: str
    subject: str
    text_body: str
    html_body: str
    cc: Tuple[str, ...] = ()

    @property
    def recipients(self) -> Tuple[str, ...]:
        return (self.to, *self.cc)


def render_downgrade_email(
    to: str,
    provider_status: str,
    *,
    pricing_url: str,
    cc: Sequence[str] = (),
) -> OutboundEmail:
    reason = _REASONS.get(provider_status, f"your subscription status changed to {provider_status}")
    text_body = (
        "Hello,\n\n"
        f"We moved your account to the Free plan because {reason}. "
        "Your cards and collection history are safe, but paid limits no longer apply.\n\n"
        f"You can pick a plan again at any time: {pricing_url}\n"
    )
    html_body = (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; line-height: 1.5; color: #0f172a;\">"
        "<p>Hello,</p>"
        f"<p>We moved your account to the Free plan because {escape(reason)}. "
        "Your cards and collection history are safe, but paid limits no longer apply.</p>"
        f"<p><a href=\"{escape(pricing_url)}\">Choose a plan</a> to restore your limits.</p>"
        "</body></html>"
    )
    return OutboundEmail(
        to=to,
        subject="Your SoleVault plan has been moved to Free",
        text_body=text_body,
        html_body=html_body,
        cc=tuple(cc),
    )


__all__ = ["OutboundEmail", "render_downgrade_email"]
