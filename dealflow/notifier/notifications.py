"""
Notification handlers for triage results.

Supports:
- Slack webhooks
- Logging fallback (no webhook configured)

Every message is queued in notifications_queue first and marked sent once
Slack accepts it. Delivery is best-effort: failures are logged and reported
as False, never raised into deal processing.
"""

import logging
import uuid
from typing import Optional, Protocol

import httpx

from ..analyst.schemas import DealStatus, Memo, MemoSchemaError
from ..config.settings import settings
from ..intake.validation import Submission

logger = logging.getLogger(__name__)

STATUS_EMOJI = {
    DealStatus.QUALIFIED: ":rocket:",
    DealStatus.REVIEW: ":eyes:",
    DealStatus.PASS: ":wave:",
    DealStatus.LLM_ERROR: ":warning:",
}


class NotificationOutbox(Protocol):
    async def enqueue_notification(
        self, message: str, deal_id: Optional[uuid.UUID] = None, channel: str = "slack"
    ) -> uuid.UUID: ...

    async def mark_notification_sent(self, notification_id: uuid.UUID) -> bool: ...


def _escape_slack_markdown(text: str) -> str:
    """
    Escape special Slack markdown characters in user-provided text.

    Company names with *, _, ` can break Slack formatting.
    """
    if not text:
        return text
    for char in ('`', '*', '_', '~'):
        text = text.replace(char, f'\\{char}')
    return text


def build_deal_message(submission: Submission, memo: Memo, status: DealStatus) -> dict:
    """Build the triage summary posted for every newly created deal."""
    company_safe = _escape_slack_markdown(submission.company_name)
    summary_safe = _escape_slack_markdown(memo.executive_summary)
    emoji = STATUS_EMOJI.get(status, "")

    text = f"""{emoji} *New deal triaged: {company_safe}*

*Status:* {status.value}
*Fit score:* {memo.fit_score}/100
*Sector:* {_escape_slack_markdown(submission.sector)}
*Stage:* {_escape_slack_markdown(submission.stage)}
*Geography:* {_escape_slack_markdown(submission.geography)}
*Website:* {submission.website}

{summary_safe}"""

    return {
        "text": text.strip(),
        "blocks": [
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Company:*\n{company_safe}"},
                    {"type": "mrkdwn", "text": f"*Status:*\n{emoji} {status.value}"},
                    {"type": "mrkdwn", "text": f"*Fit score:*\n{memo.fit_score}/100"},
                    {"type": "mrkdwn", "text": f"*Stage:*\n{_escape_slack_markdown(submission.stage)}"},
                ]
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": summary_safe or "_No summary_"}
            },
        ]
    }


def build_schema_error_message(submission: Submission, error: MemoSchemaError) -> dict:
    """Build the operator alert for a memo that failed schema validation."""
    text = f""":warning: *Memo schema failure* for {_escape_slack_markdown(submission.company_name)}

*Field:* `{error.field}`
*Violation:* {error.kind}
*Issues:* {len(error.issues)}

Deal stored with status LLM_Error and no memo."""

    return {"text": text.strip()}


class SlackNotifier:
    """Queues messages in the outbox and posts them to the Slack webhook."""

    def __init__(
        self,
        outbox: Optional[NotificationOutbox] = None,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self._outbox = outbox
        self._webhook_url = settings.slack_webhook_url if webhook_url is None else webhook_url
        self._timeout = timeout or settings.notification_timeout

    async def notify(self, message: dict, deal_id: Optional[uuid.UUID] = None) -> bool:
        """Queue and send one message. Returns True if Slack accepted it."""
        logger.info(message["text"])

        notification_id = None
        if self._outbox is not None:
            try:
                notification_id = await self._outbox.enqueue_notification(message["text"], deal_id=deal_id)
            except Exception as e:
                logger.error(f"Failed to queue notification: {e}")

        if not self._webhook_url:
            return False

        if not await self._send_slack(message):
            return False

        if self._outbox is not None and notification_id is not None:
            try:
                await self._outbox.mark_notification_sent(notification_id)
            except Exception as e:
                logger.error(f"Failed to mark notification {notification_id} sent: {e}")
        return True

    async def _send_slack(self, message: dict) -> bool:
        """Send message to Slack webhook. Returns True on success."""
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self._webhook_url,
                    json=message,
                    timeout=self._timeout,
                )
                response.raise_for_status()
                logger.info("Slack notification sent")
                return True
        except Exception as e:
            logger.error(f"Failed to send Slack notification: {e}")
            return False
