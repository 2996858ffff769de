"""
Uruti Notifications - Email Template Content.

Shared HTML layout (a Jinja2 template evaluated once when the catalog is
built) and the per-type content fragments written in the runtime
mini-language: ``{{name}}`` placeholders and ``{{#if name}}...{{else}}...{{/if}}``
blocks.
"""
from __future__ import annotations

from typing import NamedTuple


class TemplateFragment(NamedTuple):
    header_title: str
    content: str


LAYOUT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body { font-family: 'Inter', Helvetica, Arial, sans-serif; line-height: 1.5; color: #1f2937; margin: 0; background-color: #f9fafb; }
    .container { max-width: 600px; margin: 24px auto; background: #ffffff; border-radius: 8px; overflow: hidden; }
    .header { background-color: #C89B68; padding: 32px 24px; border-bottom: 3px solid #8D6E46; }
    .brand-logo { font-size: 22px; font-weight: 700; color: #ffffff; text-transform: uppercase; }
    .brand-tagline { font-size: 11px; color: rgba(255, 255, 255, 0.85); }
    .header h1 { font-size: 15px; font-weight: 600; color: #ffffff; margin: 8px 0 0; }
    .content { padding: 28px 24px; }
    .greeting { font-size: 15px; font-weight: 600; color: #111827; margin-bottom: 16px; }
    .message { font-size: 14px; color: #4b5563; margin-bottom: 20px; }
    .note { font-size: 13px; color: #6b7280; }
    .info-card { background: #f9fafb; border: 1px solid #e5e7eb; border-left: 3px solid #C89B68; border-radius: 6px; padding: 20px; margin: 20px 0; }
    .info-row { padding: 8px 0; border-bottom: 1px solid #f3f4f6; }
    .info-label { font-size: 12px; font-weight: 600; color: #6b7280; text-transform: uppercase; }
    .info-value { font-size: 14px; font-weight: 600; color: #111827; float: right; }
    .highlight-box { background: #fffbeb; border: 1px solid #fde68a; border-radius: 6px; padding: 20px; margin: 20px 0; text-align: center; }
    .highlight-number { font-size: 28px; font-weight: 700; color: #d97706; }
    .highlight-label { font-size: 12px; font-weight: 600; color: #92400e; text-transform: uppercase; }
    .alert-box { background: #fef2f2; border: 1px solid #fecaca; border-left: 3px solid #ef4444; border-radius: 6px; padding: 18px; margin: 20px 0; }
    .alert-box-warning { background: #fffbeb; border-color: #fde68a; border-left-color: #f59e0b; }
    .alert-box-success { background: #f0fdf4; border-color: #bbf7d0; border-left-color: #22c55e; }
    .alert-title { font-size: 13px; font-weight: 700; margin-bottom: 8px; }
    .items-table { width: 100%; border-collapse: collapse; font-size: 13px; border: 1px solid #e5e7eb; }
    .items-table th { text-align: left; padding: 10px 12px; background: #f9fafb; color: #6b7280; font-size: 11px; text-transform: uppercase; }
    .items-table td { padding: 10px 12px; border-bottom: 1px solid #f3f4f6; color: #374151; }
    .button-container { text-align: center; margin: 28px 0 24px; }
    .button { display: inline-block; background: #C89B68; color: #ffffff; padding: 12px 28px; text-decoration: none; border-radius: 6px; font-weight: 600; font-size: 13px; }
    .footer { background: #f9fafb; padding: 28px 24px; border-top: 1px solid #e5e7eb; text-align: center; font-size: 11px; color: #9ca3af; }
    .url-break { word-break: break-all; color: #C89B68; font-size: 12px; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <div class="brand-logo">{{ brand_name }}</div>
      <div class="brand-tagline">{{ brand_tagline }}</div>
      <h1>{{ header_title }}</h1>
    </div>
    <div class="content">
      {{ content }}
    </div>
    <div class="footer">
      &copy; {{ year }} {{ brand_name }}. All rights reserved.<br>
      You're receiving this as a registered member.
      {% raw %}{{#if unsubscribeUrl}}<br><a href="{{unsubscribeUrl}}" style="color: #9ca3af;">Manage Preferences</a>{{/if}}{% endraw %}
    </div>
  </div>
</body>
</html>
"""

_ACTION_BUTTON = """
{{#if actionUrl}}
<div class="button-container">
  <a href="{{actionUrl}}" class="button">%s</a>
</div>
{{/if}}
"""


def _button(label: str) -> str:
    return _ACTION_BUTTON % label


def _appointment_card(date_label: str = "Date", time_label: str | None = "Time") -> str:
    time_row = ""
    if time_label:
        time_row = (
            '  <div class="info-row"><span class="info-label">%s</span>'
            '<span class="info-value">{{appointmentTime}}</span></div>\n' % time_label
        )
    return (
        '<div class="info-card">\n'
        '  <div class="info-row"><span class="info-label">Location</span>'
        '<span class="info-value">{{salonName}}</span></div>\n'
        '  <div class="info-row"><span class="info-label">Service</span>'
        '<span class="info-value">{{serviceName}}</span></div>\n'
        '  <div class="info-row"><span class="info-label">%s</span>'
        '<span class="info-value">{{appointmentDate}}</span></div>\n'
        "%s"
        "  {{#if employeeName}}\n"
        '  <div class="info-row"><span class="info-label">Your Stylist</span>'
        '<span class="info-value">{{employeeName}}</span></div>\n'
        "  {{/if}}\n"
        "</div>\n" % (date_label, time_row)
    )


DEFAULT_FRAGMENT = TemplateFragment(
    header_title="{{title}}",
    content="""
{{#if customerName}}<div class="greeting">Hello {{customerName}},</div>{{/if}}
<div class="message">{{body}}</div>
{{#if actionUrl}}
<div class="button-container">
  <a href="{{actionUrl}}" class="button">{{#if actionLabel}}{{actionLabel}}{{else}}View Details{{/if}}</a>
</div>
{{/if}}
""",
)

FRAGMENTS: dict[str, TemplateFragment] = {
    "appointment_booked": TemplateFragment(
        "Booking Confirmed",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">Your appointment has been scheduled. We have reserved your time slot '
        "and look forward to serving you.</div>\n"
        + _appointment_card()
        + '<div class="note">Please arrive 5-10 minutes early. If you need to reschedule or cancel, '
        "let us know at least 24 hours in advance.</div>\n"
        + _button("View Appointment Details"),
    ),
    "appointment_reminder": TemplateFragment(
        "Upcoming Appointment",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">This is a friendly reminder about your upcoming appointment.</div>\n'
        + _appointment_card()
        + _button("View Appointment"),
    ),
    "appointment_confirmed": TemplateFragment(
        "Appointment Confirmed",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">{{salonName}} has confirmed your appointment.</div>\n'
        + _appointment_card()
        + _button("View Appointment"),
    ),
    "appointment_cancelled": TemplateFragment(
        "Appointment Cancelled",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">Your appointment has been cancelled.'
        "{{#if cancellationReason}} Reason: {{cancellationReason}}{{/if}}</div>\n"
        + _appointment_card(time_label=None)
        + '<div class="note">We hope to see you again soon. Book a new appointment any time.</div>\n'
        + _button("Book Again"),
    ),
    "appointment_rescheduled": TemplateFragment(
        "Appointment Rescheduled",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">Your appointment has been rescheduled. Here are the updated details:</div>\n'
        + _appointment_card(date_label="New Date", time_label="New Time")
        + _button("View Appointment"),
    ),
    "appointment_completed": TemplateFragment(
        "Thank You!",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">Thank you for choosing {{salonName}}! We hope you loved your service.</div>\n'
        '<div class="alert-box alert-box-success">\n'
        '  <div class="alert-title">We Value Your Feedback</div>\n'
        "  Your opinion helps us improve. Please take a moment to share your experience.\n"
        "</div>\n"
        + _button("Share Your Feedback"),
    ),
    "appointment_no_show": TemplateFragment(
        "Missed Appointment",
        '<div class="greeting">Hello {{customerName}},</div>\n'
        '<div class="message">We noticed you were unable to attend your scheduled appointment.</div>\n'
        + _appointment_card(time_label=None)
        + _button("Book New Appointment"),
    ),
    "sale_completed": TemplateFragment(
        "Payment Receipt",
        """<div class="greeting">Hello {{customerName}},</div>
<div class="message">Thank you for your purchase at {{salonName}}. Your transaction has been completed.</div>
<div class="info-card">
  {{saleItemsTable}}
  <div class="info-row"><span class="info-label">Total Amount</span><span class="info-value">{{saleAmount}}</span></div>
  {{#if paymentMethod}}
  <div class="info-row"><span class="info-label">Payment Method</span><span class="info-value">{{paymentMethod}}</span></div>
  {{/if}}
</div>
{{#if pointsEarned}}
<div class="highlight-box">
  <div class="highlight-number">+{{pointsEarned}}</div>
  <div class="highlight-label">Loyalty Points Earned</div>
  {{#if pointsBalance}}<div class="highlight-label">Balance: {{pointsBalance}} Points</div>{{/if}}
</div>
{{/if}}
<div class="note">Keep this receipt for your records.</div>
"""
        + _button("View Full Receipt"),
    ),
    "payment_received": TemplateFragment(
        "Payment Confirmed",
        """<div class="greeting">Hello,</div>
<div class="message">Your payment has been received and processed. Thank you.</div>
{{#if amount}}
<div class="info-card">
  <div class="info-row"><span class="info-label">Amount Received</span><span class="info-value">{{amount}}</span></div>
  {{#if paymentMethod}}
  <div class="info-row"><span class="info-label">Payment Method</span><span class="info-value">{{paymentMethod}}</span></div>
  {{/if}}
</div>
{{/if}}
"""
        + _button("View Receipt"),
    ),
    "payment_failed": TemplateFragment(
        "Payment Failed",
        """<div class="greeting">Hello,</div>
<div class="message">We were unable to process your payment. Please review the details below and try again.</div>
<div class="alert-box">
  <div class="alert-title">Payment Failed</div>
  {{#if amount}}<strong>Amount:</strong> {{amount}}<br>{{/if}}
  {{#if errorMessage}}<strong>Reason:</strong> {{errorMessage}}<br>{{/if}}
  <strong>Action Required:</strong> Please update your payment method and retry
</div>
"""
        + _button("Retry Payment"),
    ),
    "commission_earned": TemplateFragment(
        "New Commission",
        """<div class="greeting">Hello{{#if employeeName}} {{employeeName}}{{/if}},</div>
<div class="message">Congratulations! You have earned a new commission. It will be included in your upcoming payroll cycle.</div>
<div class="highlight-box">
  <div class="highlight-number">{{commissionAmount}}</div>
  <div class="highlight-label">Commission Earned</div>
</div>
"""
        + _button("View Commission Details"),
    ),
    "commission_paid": TemplateFragment(
        "Payment Processed",
        """<div class="greeting">Hello{{#if employeeName}} {{employeeName}}{{/if}},</div>
<div class="message">Your commission payment has been processed and transferred to your account.</div>
<div class="info-card">
  <div class="info-row"><span class="info-label">Amount Paid</span><span class="info-value">{{commissionAmount}}</span></div>
  <div class="info-row"><span class="info-label">Status</span><span class="info-value">Completed</span></div>
</div>
<div class="note">Please allow 1-3 business days for the payment to reflect in your account.</div>
"""
        + _button("View Payment Details"),
    ),
    "commission_updated": TemplateFragment(
        "Commission Updated",
        """<div class="greeting">Hello,</div>
<div class="message">Your commission details have been updated.</div>
{{#if commissionAmount}}
<div class="info-card">
  <div class="info-row"><span class="info-label">Updated Amount</span><span class="info-value">{{commissionAmount}}</span></div>
</div>
{{/if}}
"""
        + _button("View Commission Details"),
    ),
    "points_earned": TemplateFragment(
        "Points Earned",
        """<div class="greeting">Hello {{customerName}},</div>
<div class="message">You have earned loyalty points from your recent visit. Thank you for being a valued member.</div>
<div class="highlight-box">
  <div class="highlight-number">+{{pointsEarned}}</div>
  <div class="highlight-label">Points Added</div>
  <div class="highlight-label">Total Balance: {{pointsBalance}} Points</div>
</div>
"""
        + _button("View Points &amp; Rewards"),
    ),
    "low_stock_alert": TemplateFragment(
        "Low Stock Alert",
        """<div class="greeting">Hello,</div>
<div class="message">The following product has fallen below its minimum stock level and needs restocking.</div>
<div class="alert-box">
  <div class="alert-title">Inventory Alert</div>
  <strong>Product:</strong> {{productName}}<br>
  <strong>Current Stock:</strong> {{stockLevel}} units<br>
  {{#if minStock}}<strong>Minimum Required:</strong> {{minStock}} units{{/if}}
</div>
"""
        + _button("Manage Inventory"),
    ),
    "password_reset": TemplateFragment(
        "Password Reset",
        """<div class="greeting">Hello {{customerName}},</div>
<div class="message">We received a request to reset your password. Use the button below to choose a new one.</div>
<div class="button-container">
  <a href="{{actionUrl}}" class="button">Reset Your Password</a>
</div>
<div class="alert-box alert-box-warning">
  <div class="alert-title">Security Information</div>
  This link expires in {{#if expiryMinutes}}{{expiryMinutes}} minutes{{else}}1 hour{{/if}}.
  If you did not request this, please ignore this email.
</div>
<div class="note">Button not working? Copy this link into your browser:<br><span class="url-break">{{actionUrl}}</span></div>
""",
    ),
    "email_change_verification": TemplateFragment(
        "Update Email Address",
        """<div class="greeting">Hello {{customerName}},</div>
<div class="message">You requested to change your email address. Use the button below to continue.</div>
<div class="button-container">
  <a href="{{actionUrl}}" class="button">Update Email Address</a>
</div>
<div class="alert-box alert-box-warning">
  <div class="alert-title">Security Notice</div>
  This link expires in 15 minutes. If you did not request this change, please ignore this email.
</div>
<div class="note">Button not working? Copy this link into your browser:<br><span class="url-break">{{actionUrl}}</span></div>
""",
    ),
    "permission_granted": TemplateFragment(
        "Access Granted",
        """<div class="greeting">Hello,</div>
<div class="message">You have been granted new access permissions at {{salonName}}.</div>
<div class="alert-box alert-box-success">
  <div class="alert-title">New Permissions</div>
  <strong>Granted Access:</strong> {{permissions}}<br>
  <strong>Effective:</strong> Immediately
</div>
"""
        + _button("Go to Dashboard"),
    ),
    "permission_revoked": TemplateFragment(
        "Access Updated",
        """<div class="greeting">Hello,</div>
<div class="message">Your access permissions at {{salonName}} have been updated. Some features may no longer be available.</div>
<div class="alert-box alert-box-warning">
  <div class="alert-title">Permissions Changed</div>
  <strong>Removed Access:</strong> {{permissions}}<br>
  <strong>Effective:</strong> Immediately
</div>
"""
        + _button("Contact Administrator"),
    ),
    "membership_status": TemplateFragment(
        "{{title}}",
        """<div class="greeting">Hello,</div>
<div class="message">{{body}}</div>
<div class="info-card">
  <div class="info-row"><span class="info-label">Location</span><span class="info-value">{{salonName}}</span></div>
  {{#if status}}<div class="info-row"><span class="info-label">Status</span><span class="info-value">{{status}}</span></div>{{/if}}
  {{#if expiryDate}}<div class="info-row"><span class="info-label">Expiry Date</span><span class="info-value">{{expiryDate}}</span></div>{{/if}}
  {{#if balance}}<div class="info-row"><span class="info-label">Outstanding Balance</span><span class="info-value">{{balance}}</span></div>{{/if}}
</div>
{{#if balance}}
<div class="alert-box alert-box-warning">
  <div class="alert-title">Payment Required</div>
  Please settle your outstanding balance to keep your membership benefits.
</div>
{{/if}}
{{#if actionUrl}}
<div class="button-container">
  <a href="{{actionUrl}}" class="button">{{#if actionLabel}}{{actionLabel}}{{else}}View Membership{{/if}}</a>
</div>
{{/if}}
""",
    ),
}
